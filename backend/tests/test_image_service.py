import base64
import io

from PIL import Image

from smartpos.services import image_service


def _data_url(mode, size, fmt='PNG'):
    buf = io.BytesIO()
    Image.new(mode, size).save(buf, format=fmt)
    return f'data:image/{fmt.lower()};base64,' + base64.b64encode(buf.getvalue()).decode('ascii')


def test_is_data_url():
    assert image_service.is_data_url('data:image/png;base64,AAAA')
    assert not image_service.is_data_url('https://example.com/a.png')
    assert not image_service.is_data_url('')
    assert not image_service.is_data_url(None)


def test_custom_width_and_transparency_flattened():
    out = image_service.compress_data_url(_data_url('RGBA', (300, 150)), max_width=100, quality=50)

    raw = base64.b64decode(out.split(',', 1)[1])
    with Image.open(io.BytesIO(raw)) as img:
        assert img.format == 'JPEG'
        assert img.mode == 'RGB'
        assert img.size == (100, 50)


def test_broken_payload_is_returned_unchanged():
    broken = 'data:image/png;base64,bm90IGFuIGltYWdl'
    assert image_service.compress_data_url(broken) == broken


def test_invalid_base64_is_returned_unchanged():
    broken = 'data:image/png;base64,@@@'
    assert image_service.compress_data_url(broken) == broken


def test_non_data_url_passes_through():
    assert image_service.compress_data_url('/static/logo.png') == '/static/logo.png'
