import re
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def test_project_metadata_points_at_shipped_files():
    text = (ROOT / 'pyproject.toml').read_text()
    for key in ('readme', 'license-files'):
        for target in re.findall(rf'^{key}\s*=\s*"([^"]+)"', text, flags=re.MULTILINE):
            assert (ROOT / target).is_file(), f"{key} points at missing {target}"
    assert 'SPEC_FULL.md' not in text


def test_declared_modules_exist():
    text = (ROOT / 'pyproject.toml').read_text()
    modules = re.search(r'^py-modules\s*=\s*\[([^\]]*)\]', text, flags=re.MULTILINE).group(1)
    for name in re.findall(r'"([^"]+)"', modules):
        assert (ROOT / f'{name}.py').is_file()
    assert (ROOT / 'jeeprouting' / '__init__.py').is_file()
