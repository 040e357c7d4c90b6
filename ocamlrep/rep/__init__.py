"""Value representation, decoding protocol and tooling behind :mod:`ocamlrep`."""

from . import core as _core
from . import errors as _errors
from . import arena as _arena
from . import from_rep as _from_rep
from . import decode as _decode
from . import document as _document
from . import analysis as _analysis
from .cli import main, parse_args

from .core import *
from .errors import *
from .arena import *
from .from_rep import *
from .decode import *
from .document import *
from .analysis import *

__all__ = []
for module in (_core, _errors, _arena, _from_rep, _decode, _document, _analysis):
    __all__.extend(getattr(module, '__all__', []))
__all__ += ['main', 'parse_args']
__all__ = list(dict.fromkeys(__all__))
