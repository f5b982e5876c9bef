"""
Plane sources: turn decoded image data into ordered PlaneRecord lists.

Decoding itself is delegated to tifffile, h5py and scikit-image. This module
only maps the decoded arrays onto (series, channel, depth, time) positions.
"""

import logging
from pathlib import Path

import numpy as np
import h5py
from tifffile import TiffFile
from skimage import io, transform

from core.errors import InvalidParameter, UnsupportedFormat
from core.hierarchy import PlaneRecord
from core.raster import Raster, to_uint8

# T: time, Z: depth, C: channel, Y/X: plane rows/columns, S: colour samples
KNOWN_AXES = 'TZCYXS'
# Axis letters tifffile uses for otherwise unlabelled stack dimensions
STACK_AXES = 'QI'


def infer_axes(shape):
    """Guess an axes string for an array that carries no axis metadata."""
    ndim = len(shape)
    if ndim == 2:
        return 'YX'
    if ndim == 3:
        return 'YXS' if shape[2] in (3, 4) else 'ZYX'
    if ndim == 4:
        return 'ZYXS' if shape[3] in (3, 4) else 'ZCYX'
    if ndim == 5:
        return 'TZCYX'
    raise InvalidParameter(f"Cannot infer axes for array with shape {shape}")


def _normalize_axes(axes):
    axes = axes.upper()
    for letter in STACK_AXES:
        if letter in axes and 'Z' not in axes and axes.count(letter) == 1:
            axes = axes.replace(letter, 'Z')

    unknown = set(axes) - set(KNOWN_AXES)
    if unknown:
        raise UnsupportedFormat(f"Unsupported axes {''.join(sorted(unknown))} in '{axes}'")
    if len(set(axes)) != len(axes):
        raise InvalidParameter(f"Repeated axis in '{axes}'")
    if 'Y' not in axes or 'X' not in axes:
        raise InvalidParameter(f"Axes '{axes}' must contain Y and X")
    return axes


def planes_from_array(array, axes, series_id=0):
    """Split an n-dimensional array into plane records.

    Planes are emitted time-major, then depth, then channel, so within one
    (series, channel) pair the order is depth then time. Non-uint8 data is
    rescaled over the whole array so that slices stay comparable.
    """
    array = np.asarray(array)
    axes = _normalize_axes(axes)
    if len(axes) != array.ndim:
        raise InvalidParameter(f"Axes '{axes}' do not match array with {array.ndim} dimensions")

    if array.dtype != np.uint8:
        array = to_uint8(array)

    if 'S' in axes and array.shape[axes.index('S')] == 1:
        array = np.take(array, 0, axis=axes.index('S'))
        axes = axes.replace('S', '')

    for letter in 'CZT':
        if letter not in axes:
            array = array[np.newaxis]
            axes = letter + axes

    order = [axes.index(letter) for letter in 'TZCYX']
    if 'S' in axes:
        order.append(axes.index('S'))
    array = np.transpose(array, order)

    size_t, size_z, size_c = array.shape[:3]
    planes = []
    for t in range(size_t):
        for z in range(size_z):
            for c in range(size_c):
                raster = Raster.from_array(array[t, z, c])
                planes.append(PlaneRecord(series_id, c, z, t, raster))
    return planes


class ImageLoader:
    """Reads image files and folders into plane records."""

    def __init__(self, logger=None, supported_formats=None):
        self.logger = logger or logging.getLogger('stack_composer')
        self.supported_formats = supported_formats or {
            'tiff': ['.tif', '.tiff'],
            'hdf5': ['.h5', '.hdf5'],
            'image': ['.png', '.jpg', '.jpeg', '.bmp', '.gif']
        }

    @classmethod
    def from_config(cls, config, logger=None):
        return cls(logger, config.get('loading', {}).get('supported_formats'))

    @property
    def folder_extensions(self):
        return self.supported_formats['image'] + self.supported_formats['tiff']

    def load(self, path):
        """Load a folder or a single file."""
        path = Path(path)
        if path.is_dir():
            return self.load_directory(path)
        return self.load_file(path)

    def load_file(self, file_path):
        """Load every plane of a single file."""
        file_path = Path(file_path)
        if not file_path.exists():
            self.logger.error(f"File not found: {file_path}")
            raise FileNotFoundError(str(file_path))

        ext = file_path.suffix.lower()
        self.logger.info(f"Loading planes from {file_path}")

        if ext in self.supported_formats['tiff']:
            planes = self._load_tiff(file_path)
        elif ext in self.supported_formats['hdf5']:
            planes = self._load_hdf5(file_path)
        elif ext in self.supported_formats['image']:
            image = io.imread(str(file_path))
            planes = planes_from_array(image, infer_axes(image.shape))
        else:
            self.logger.error(f"Unsupported file format: {ext}")
            raise UnsupportedFormat(f"Unsupported file format: {ext}")

        self.logger.info(f"Loaded {len(planes)} planes from {file_path.name}")
        return planes

    def _load_tiff(self, file_path):
        planes = []
        with TiffFile(str(file_path)) as tif:
            for series_id, series in enumerate(tif.series):
                data = series.asarray()
                self.logger.debug(f"TIFF series {series_id}: shape {data.shape}, axes {series.axes}")
                planes.extend(planes_from_array(data, series.axes, series_id))
        return planes

    def _load_hdf5(self, file_path):
        with h5py.File(file_path, 'r') as f:
            datasets = list(f.keys())
            self.logger.debug(f"HDF5 datasets: {datasets}")

            if not datasets:
                raise UnsupportedFormat(f"No datasets found in {file_path}")

            dataset = f['data' if 'data' in datasets else datasets[0]]
            data = dataset[()]
            axes = dataset.attrs.get('axes', f.attrs.get('axes'))

        if isinstance(axes, bytes):
            axes = axes.decode('ascii')
        if axes is None:
            axes = infer_axes(data.shape)
        return planes_from_array(data, str(axes))

    def list_image_files(self, directory):
        """Supported image files directly inside directory, sorted by name."""
        directory = Path(directory)
        if not directory.is_dir():
            return []

        extensions = self.folder_extensions
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in extensions
        )

    def load_directory(self, directory):
        """Folder case: one plane per file in series 0, channel 0.

        Depth is the file's position in name order. Images whose size differs
        from the first file are resized to match it.
        """
        files = self.list_image_files(directory)
        self.logger.info(f"Loading {len(files)} images from {directory}")

        planes = []
        first_shape = None
        for depth, file_path in enumerate(files):
            image = io.imread(str(file_path))
            if infer_axes(image.shape) not in ('YX', 'YXS'):
                self.logger.warning(f"{file_path.name} holds a stack; using its first plane")
                while infer_axes(image.shape) not in ('YX', 'YXS'):
                    image = image[0]

            if first_shape is None:
                first_shape = image.shape[:2]
            elif image.shape[:2] != first_shape:
                self.logger.debug(f"Resizing {file_path.name} from {image.shape[:2]} to {first_shape}")
                target = first_shape + image.shape[2:]
                image = transform.resize(image, target, preserve_range=True).astype(image.dtype)

            planes.append(PlaneRecord(0, 0, depth, 0, Raster.from_array(image)))
        return planes
