__title__ = 'jeeprouting'
__version__ = '1.0.0'
__author__ = 'JRoute Team'
__license__ = 'MIT'
__copyright__ = 'Copyright 2025 JRoute Team'

__all__ = ['core_route_composer', 'corpus_cache', 'scoring', 'config', 'logger', 'exceptions']

# Set default logging handler to avoid "No handler found" warnings.
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
