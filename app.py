from flask import Flask
from flask_cors import CORS

from jeeprouting.config import config
from routing import initialize_route_composer, routing_bp


def create_app(composer=None):
    """Flask app with the routing blueprint and a ready composer"""
    app = Flask(__name__)
    CORS(app)
    app.register_blueprint(routing_bp)
    initialize_route_composer(composer)

    @app.route('/')
    def index():
        return "JRoute backend is running!"

    return app


if __name__ == '__main__':
    api = config.get_api_config()
    app = create_app()
    print(f"\n🚀 JRoute backend running at: http://{api['host']}:{api['port']}\n")
    app.run(host=api['host'], port=api['port'], debug=api['debug'])
