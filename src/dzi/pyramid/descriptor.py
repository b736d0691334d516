"""The ``.dzi`` descriptor: data holder plus XML codec.

The descriptor follows the Deep Zoom 2008 schema understood by
OpenSeadragon and other viewers::

    <?xml version="1.0" encoding="UTF-8"?>
    <Image xmlns="http://schemas.microsoft.com/deepzoom/2008"
           TileSize="254" Overlap="1" Format="jpg">
      <Size Width="1000" Height="1000" />
    </Image>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Self

from dzi.pyramid.config import PyramidConfig
from dzi.pyramid.exceptions import DescriptorIoError

DEEPZOOM_NAMESPACE = "http://schemas.microsoft.com/deepzoom/2008"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _int_attribute(element: ET.Element, name: str) -> int:
    raw = element.get(name)
    if raw is None:
        raise DescriptorIoError(f"<{_local_name(element.tag)}> is missing attribute {name}")
    try:
        return int(raw)
    except ValueError:
        raise DescriptorIoError(
            f"Attribute {name}={raw!r} on <{_local_name(element.tag)}> is not an integer"
        ) from None


@dataclass(frozen=True)
class Descriptor:
    """Format parameters of a built pyramid.

    Attributes:
        tile_size: Core tile edge length in pixels.
        overlap: Overlap between neighbouring tiles in pixels.
        format: Tile file extension (lowercase, e.g. "jpg").
        width: Full-resolution width in pixels.
        height: Full-resolution height in pixels.
    """

    tile_size: int
    overlap: int
    format: str
    width: int
    height: int

    @classmethod
    def from_config(cls, config: PyramidConfig, width: int, height: int) -> Self:
        """Build the descriptor of a pyramid produced with ``config``."""
        return cls(
            tile_size=config.tile_size,
            overlap=config.overlap,
            format=config.format.value,
            width=width,
            height=height,
        )

    def to_xml(self) -> str:
        """Render the descriptor as a Deep Zoom XML document."""
        # xmlns as a literal attribute keeps tags and attributes unprefixed
        image = ET.Element(
            "Image",
            {
                "xmlns": DEEPZOOM_NAMESPACE,
                "TileSize": str(self.tile_size),
                "Overlap": str(self.overlap),
                "Format": self.format,
            },
        )
        ET.SubElement(image, "Size", {"Width": str(self.width), "Height": str(self.height)})
        ET.indent(image, space="  ")
        return XML_DECLARATION + ET.tostring(image, encoding="unicode") + "\n"

    @classmethod
    def from_xml(cls, text: str | bytes) -> Self:
        """Parse a Deep Zoom XML document.

        Documents without the Deep Zoom namespace are accepted as long as
        the element names match.

        Raises:
            DescriptorIoError: If the document is malformed or incomplete.
        """
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise DescriptorIoError(f"Malformed descriptor XML: {e}") from e

        if _local_name(root.tag) != "Image":
            raise DescriptorIoError(
                f"Expected <Image> root element, found <{_local_name(root.tag)}>"
            )
        size = next((child for child in root if _local_name(child.tag) == "Size"), None)
        if size is None:
            raise DescriptorIoError("Descriptor has no <Size> element")

        fmt = root.get("Format")
        if not fmt:
            raise DescriptorIoError("<Image> is missing attribute Format")

        return cls(
            tile_size=_int_attribute(root, "TileSize"),
            overlap=_int_attribute(root, "Overlap"),
            format=fmt,
            width=_int_attribute(size, "Width"),
            height=_int_attribute(size, "Height"),
        )

    def write(self, path: Path | str) -> Path:
        """Write the descriptor to ``path`` (UTF-8), creating parent directories.

        Returns:
            The path written.

        Raises:
            DescriptorIoError: If the directory or file cannot be written.
        """
        path = Path(path)
        text = self.to_xml()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise DescriptorIoError(f"Failed to write descriptor: {e}", path=path) from e
        return path

    @classmethod
    def read(cls, path: Path | str) -> Self:
        """Read and parse a descriptor file.

        Raises:
            DescriptorIoError: If the file cannot be read or parsed.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DescriptorIoError(f"Failed to read descriptor: {e}", path=path) from e
        try:
            return cls.from_xml(data)
        except DescriptorIoError as e:
            raise DescriptorIoError(e.message, path=path) from e
