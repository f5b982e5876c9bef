import numpy as np
import pytest
import h5py
from skimage import io
from tifffile import imwrite

from core.errors import InvalidParameter, UnsupportedFormat
from core.hierarchy import build_hierarchy
from core.image_loader import ImageLoader, infer_axes, planes_from_array


def _positions(planes):
    return [(p.series_id, p.channel_id, p.depth_index, p.time_index) for p in planes]


def test_infer_axes() -> None:
    assert infer_axes((4, 5)) == 'YX'
    assert infer_axes((4, 5, 3)) == 'YXS'
    assert infer_axes((7, 4, 5)) == 'ZYX'
    assert infer_axes((7, 4, 5, 4)) == 'ZYXS'
    assert infer_axes((7, 2, 4, 5)) == 'ZCYX'
    assert infer_axes((2, 7, 2, 4, 5)) == 'TZCYX'
    with pytest.raises(InvalidParameter):
        infer_axes((1, 1, 1, 1, 1, 1))


def test_planes_from_array_order() -> None:
    data = np.arange(2 * 3 * 2 * 4 * 5, dtype=np.uint8).reshape(2, 3, 2, 4, 5)
    planes = planes_from_array(data, 'TZCYX', series_id=1)

    assert len(planes) == 12
    assert _positions(planes)[:4] == [(1, 0, 0, 0), (1, 1, 0, 0), (1, 0, 1, 0), (1, 1, 1, 0)]
    assert _positions(planes)[6] == (1, 0, 0, 1)
    assert planes[3].raster.red.tolist() == data[0, 1, 1].tolist()

    # Within one channel, depth runs before time
    channel0 = [p for p in planes if p.channel_id == 0]
    assert [(p.time_index, p.depth_index) for p in channel0] == [
        (0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]


def test_planes_from_array_axis_permutation() -> None:
    data = np.zeros((2, 3, 4, 5), dtype=np.uint8)
    data[1, 2] = 9
    planes = planes_from_array(data, 'CZYX')

    assert len(planes) == 6
    plane = next(p for p in planes if p.channel_id == 1 and p.depth_index == 2)
    assert plane.raster.shape == (4, 5)
    assert plane.raster.pixel(0, 0) == (255, 9, 9, 9)


def test_planes_from_array_colour_and_scaling() -> None:
    rgb = np.zeros((4, 5, 3), dtype=np.uint8)
    rgb[..., 1] = 200
    planes = planes_from_array(rgb, 'YXS')
    assert len(planes) == 1
    assert planes[0].raster.pixel(0, 0) == (255, 0, 200, 0)

    wide = np.array([[[0, 100]], [[50, 200]]], dtype=np.uint16)
    low, high = planes_from_array(wide, 'ZYX')
    # Scaling is shared by the whole stack
    assert low.raster.red.tolist() == [[0, 128]]
    assert high.raster.red.tolist() == [[64, 255]]


def test_planes_from_array_rejects_bad_axes() -> None:
    data = np.zeros((2, 4, 5), dtype=np.uint8)
    with pytest.raises(InvalidParameter):
        planes_from_array(data, 'YX')
    with pytest.raises(InvalidParameter):
        planes_from_array(data, 'ZZX')
    with pytest.raises(UnsupportedFormat):
        planes_from_array(data, 'EYX')
    assert len(planes_from_array(data, 'QYX')) == 2


def test_load_tiff_stack(tmp_path) -> None:
    data = np.zeros((5, 6, 7), dtype=np.uint8)
    for z in range(5):
        data[z] = z * 10
    path = tmp_path / 'stack.tif'
    imwrite(path, data)

    planes = ImageLoader().load_file(path)
    assert _positions(planes) == [(0, 0, z, 0) for z in range(5)]
    assert planes[3].raster.pixel(0, 0) == (255, 30, 30, 30)

    tree = build_hierarchy(planes)
    assert tree.first_channel().base_raster.pixel(0, 0) == (255, 40, 40, 40)


def test_load_hdf5(tmp_path) -> None:
    path = tmp_path / 'stack.h5'
    data = np.zeros((2, 3, 4, 5), dtype=np.uint8)
    with h5py.File(path, 'w') as f:
        dset = f.create_dataset('data', data=data)
        dset.attrs['axes'] = 'CZYX'
        f.create_dataset('other', data=np.zeros((2, 2)))

    planes = ImageLoader().load_file(path)
    assert len(planes) == 6
    assert {p.channel_id for p in planes} == {0, 1}

    plain = tmp_path / 'plain.hdf5'
    with h5py.File(plain, 'w') as f:
        f.create_dataset('volume', data=np.zeros((3, 4, 5), dtype=np.uint8))
    assert _positions(ImageLoader().load_file(plain)) == [(0, 0, z, 0) for z in range(3)]


def test_load_single_image(tmp_path) -> None:
    rgb = np.zeros((4, 5, 3), dtype=np.uint8)
    rgb[..., 0] = 255
    path = tmp_path / 'red.png'
    io.imsave(str(path), rgb)

    planes = ImageLoader().load(path)
    assert len(planes) == 1
    assert planes[0].raster.pixel(2, 2) == (255, 255, 0, 0)


def test_load_file_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        ImageLoader().load_file(tmp_path / 'missing.tif')

    other = tmp_path / 'data.xyz'
    other.write_text('not an image')
    with pytest.raises(UnsupportedFormat):
        ImageLoader().load_file(other)


def test_directory_listing_and_loading(tmp_path) -> None:
    io.imsave(str(tmp_path / 'b.png'), np.full((4, 6), 20, dtype=np.uint8), check_contrast=False)
    io.imsave(str(tmp_path / 'a.png'), np.full((4, 6), 10, dtype=np.uint8), check_contrast=False)
    io.imsave(str(tmp_path / 'c.png'), np.full((8, 12), 30, dtype=np.uint8), check_contrast=False)
    (tmp_path / 'notes.txt').write_text('ignored')
    (tmp_path / 'sub.png').mkdir()

    loader = ImageLoader()
    files = loader.list_image_files(tmp_path)
    assert [f.name for f in files] == ['a.png', 'b.png', 'c.png']
    assert loader.list_image_files(tmp_path / 'a.png') == []

    planes = loader.load(tmp_path)
    assert _positions(planes) == [(0, 0, 0, 0), (0, 0, 1, 0), (0, 0, 2, 0)]
    assert [p.raster.pixel(0, 0)[1] for p in planes] == [10, 20, 30]
    assert planes[2].raster.shape == (4, 6)

    tree = build_hierarchy(planes)
    assert tree.first_channel().base_raster.pixel(0, 0) == (255, 30, 30, 30)


def test_loader_from_config() -> None:
    formats = {'tiff': ['.tif'], 'hdf5': [], 'image': ['.png']}
    loader = ImageLoader.from_config({'loading': {'supported_formats': formats}})
    assert loader.folder_extensions == ['.png', '.tif']
