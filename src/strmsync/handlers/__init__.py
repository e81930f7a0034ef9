"""Per media kind handlers: live channels, movies and series."""

from .base import Catalog, HandlerContext, MediaHandler, load_catalog, run_handler
from .live import LiveHandler
from .movies import MovieHandler
from .series import SeriesHandler

HANDLER_TYPES = (LiveHandler, SeriesHandler, MovieHandler)

__all__ = [
    "Catalog",
    "HANDLER_TYPES",
    "HandlerContext",
    "LiveHandler",
    "MediaHandler",
    "MovieHandler",
    "SeriesHandler",
    "load_catalog",
    "run_handler",
]
