from .backends.base import OutputBackend
from .backends.pdf import PdfBackend
from .backends.svg import HtmlBackend, SvgBackend
from .exceptions import UnsupportedFormatError

_BACKENDS: list[type[OutputBackend]] = [
    SvgBackend,
    HtmlBackend,
    PdfBackend,
]


def get_backend(fmt: str) -> OutputBackend:
    """Return an instantiated backend for the given output format.

    Raises UnsupportedFormatError if no backend matches.
    """
    for cls in _BACKENDS:
        if cls.can_handle(fmt):
            return cls()
    raise UnsupportedFormatError(fmt)


def supported_formats() -> list[str]:
    return [cls.extension.lstrip(".") for cls in _BACKENDS]
