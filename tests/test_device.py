import pytest

from amigadisk.device import (
    BLOCK_SIZE,
    Device,
    DeviceError,
    DeviceType,
    create_dump_device,
    device_type,
)


@pytest.fixture
def dd_image(tmp_path):
    path = tmp_path / "disk.adf"
    with create_dump_device(path, 80, 2, 11):
        pass
    return path


@pytest.mark.parametrize(
    "size, expected",
    [
        (512 * 11 * 2 * 80, DeviceType.FLOPDD),
        (512 * 11 * 2 * 81, DeviceType.FLOPDD),
        (512 * 11 * 2 * 82, DeviceType.FLOPDD),
        (512 * 11 * 2 * 83, DeviceType.FLOPDD),
        (512 * 22 * 2 * 80, DeviceType.FLOPHD),
        (512 * 22 * 2 * 80 + 512, DeviceType.HARDDISK),
    ],
)
def test_device_type_from_size(size, expected):
    assert device_type(size) == expected


@pytest.mark.parametrize("size", [0, 512, 512 * 11 * 2 * 84])
def test_device_type_unknown(size):
    with pytest.raises(DeviceError):
        device_type(size)


def test_create_floppy_dd(tmp_path):
    path = tmp_path / "dd.adf"
    with create_dump_device(path, 80, 2, 11) as dev:
        assert dev.type == DeviceType.FLOPDD
        assert dev.size == 512 * 11 * 2 * 80
        assert (dev.cylinders, dev.heads, dev.sectors) == (80, 2, 11)
        assert dev.read_only is False
    assert path.stat().st_size == 512 * 11 * 2 * 80


def test_create_floppy_hd(tmp_path):
    with create_dump_device(tmp_path / "hd.adf", 80, 2, 22) as dev:
        assert dev.type == DeviceType.FLOPHD


def test_create_other_geometry_is_harddisk(tmp_path):
    with create_dump_device(tmp_path / "h.hdf", 10, 1, 1) as dev:
        assert dev.type == DeviceType.HARDDISK
        assert dev.size == 10 * BLOCK_SIZE


def test_create_rejects_empty_geometry(tmp_path):
    with pytest.raises(DeviceError):
        create_dump_device(tmp_path / "empty.adf", 0, 2, 11)


def test_created_image_is_zero_filled(dd_image):
    with Device(dd_image, read_only=True) as dev:
        assert dev.read_block(0) == bytes(BLOCK_SIZE)
        assert dev.read_block(1759) == bytes(BLOCK_SIZE)


def test_open_floppy_geometry(dd_image):
    with Device(dd_image, read_only=True) as dev:
        assert dev.type == DeviceType.FLOPDD
        assert (dev.cylinders, dev.heads, dev.sectors) == (80, 2, 11)
        assert dev.read_only is True
        assert dev.volumes == []


def test_write_then_read_round_trip(dd_image):
    payload = bytes(range(256)) * 2
    with Device(dd_image, read_only=False) as dev:
        dev.write_block(880, payload)
        assert dev.read_block(880) == payload
    with Device(dd_image, read_only=True) as dev:
        assert dev.read_block(880) == payload
        assert dev.read_block(879) == bytes(BLOCK_SIZE)


def test_partial_read_size(dd_image):
    with Device(dd_image) as dev:
        dev.write_block(3, b"DOS\x00")
        assert dev.read_block(3, 4) == b"DOS\x00"


def test_write_on_read_only_raises(dd_image):
    with Device(dd_image, read_only=True) as dev:
        with pytest.raises(DeviceError):
            dev.write_block(0, bytes(BLOCK_SIZE))


def test_read_past_end_raises(dd_image):
    with Device(dd_image, read_only=True) as dev:
        with pytest.raises(DeviceError):
            dev.read_block(1760)


def test_negative_sector_raises(dd_image):
    with Device(dd_image, read_only=True) as dev:
        with pytest.raises(DeviceError):
            dev.read_block(-1)


def test_open_missing_file_raises(tmp_path):
    with pytest.raises(DeviceError):
        Device(tmp_path / "missing.adf", read_only=True)


def test_open_unknown_size_raises(tmp_path):
    path = tmp_path / "odd.adf"
    path.write_bytes(bytes(1000))
    with pytest.raises(DeviceError):
        Device(path, read_only=True)


def test_open_harddisk_size_raises(tmp_path):
    path = tmp_path / "big.hdf"
    path.write_bytes(bytes(512 * 22 * 2 * 80 + 512))
    with pytest.raises(DeviceError):
        Device(path, read_only=True)


def test_context_manager_closes(dd_image):
    with Device(dd_image, read_only=True) as dev:
        assert dev.closed is False
    assert dev.closed is True
    with pytest.raises(DeviceError):
        dev.read_block(0)


def test_close_is_idempotent(dd_image):
    dev = Device(dd_image, read_only=True)
    dev.close()
    dev.close()
    assert dev.closed is True