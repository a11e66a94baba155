"""Pivot table layout engine"""

__version__ = "0.1.0"

from .common import *
from .errors import *
from .metadata import *
from .layout import *
from .engine import *
from .logging import *
