__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = "argchain"
__author__ = "argchain contributors"
__license__ = "MIT"
__version__ = "0.0.0"

from collections import namedtuple as _namedtuple

from .parser import *
from .flags import *
from .commands import *
from .faults import *

VersionInfo = _namedtuple("VersionInfo", "major minor micro releaselevel serial metadata")

# keep in step with __version__
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info",
    *parser.__all__,  # type: ignore[attr-defined]
    *flags.__all__,  # type: ignore[attr-defined]
    *commands.__all__,  # type: ignore[attr-defined]
    *faults.__all__,  # type: ignore[attr-defined]
)
