"""Hyperion SmartView provider client"""

__version__ = "0.2.0"

from .errors import *
from .logging import *
from .provider import *
from .metadata import *
from .query import *
from .transport import *
from .session import *
from .config import *
