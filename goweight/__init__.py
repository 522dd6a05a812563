"""goweight: attribute the size of Go binaries to packages and modules."""

__version__ = "0.3.0"

from .analyzer import BinaryOutcome, GoWeight
from .models import ModuleEntry, SizeMethod

__all__ = ["BinaryOutcome", "GoWeight", "ModuleEntry", "SizeMethod", "__version__"]
