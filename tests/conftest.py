import pytest


@pytest.fixture
def write_hex(tmp_path):
    """Write lines to a .hex file under tmp_path and return its path."""
    def _write(lines, name='app.hex'):
        path = tmp_path / name
        path.write_text('\n'.join(lines) + '\n')
        return path
    return _write
