"""peggylsp – Peggy grammar Language Server."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version('peggylsp')
except PackageNotFoundError:
    __version__ = '0.0.0.dev0'
