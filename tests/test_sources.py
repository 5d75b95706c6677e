import warnings
from pathlib import Path

import pytest

import ims

SOURCES = sorted(Path(ims.__file__).parent.rglob('*.py'))


@pytest.mark.parametrize('path', SOURCES, ids=lambda p: p.name)
def test_compiles_without_warnings(path):
    # Invalid escapes in strings and docstrings only warn at compile time
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        compile(path.read_text(encoding='utf-8'), str(path), 'exec')
