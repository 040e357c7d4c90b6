"""Decode values from the OCaml runtime representation into typed Python values."""

from . import constants as _constants
from . import rep as _rep
from . import schema as _schema
from .constants import *  # noqa: F401,F403
from .rep import *  # noqa: F401,F403
from .schema import *  # noqa: F401,F403

__all__ = []
__all__ += getattr(_constants, "__all__", [])
__all__ += getattr(_rep, "__all__", [])
__all__ += getattr(_schema, "__all__", [])
__all__ = list(dict.fromkeys(__all__))
