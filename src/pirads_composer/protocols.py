"""Interfaces of the collaborators the composer talks to."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from .core.raster import RasterImage


@runtime_checkable
class ImageSourceProvider(Protocol):
    """Supplies decoded rasters; raises ``ImageDecodeError`` when decoding fails."""

    def load(self, reference: Union[str, Path]) -> RasterImage:
        ...

    def decode(self, data: bytes, source: Optional[str] = None) -> RasterImage:
        ...


@runtime_checkable
class ReportTextSource(Protocol):
    """Turns structured form values into the report text.

    Returns the HTML-formatted report and its plain-text derivative. The
    composer only consumes the result; it ships no implementation.
    """

    def render_report(self, values: Mapping[str, Any]) -> Tuple[str, str]:
        ...
