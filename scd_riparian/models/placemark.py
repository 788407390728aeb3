"""Data model for placemarks parsed from an uploaded KML file.

A ``SiteDocument`` is the output of the KML parser: the site name taken
from the KML folder and one ``Placemark`` per folder placemark, each
with its geometry serialised as WKT.  It is the input to the site
import preview.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Placemark:
    """A single named placemark.

    Attributes:
        index: Zero-based position within the site folder.
        name: Placemark name, or ``"{site name} {index}"`` when unnamed.
        wkt: Geometry as WKT, or ``None`` when it could not be parsed.
        geometry_type: Shapely geometry type (``"LineString"``, ...) or ``""``.
        description: Placemark description text.
    """

    index: int
    name: str
    wkt: str | None = None
    geometry_type: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "name": self.name,
            "wkt": self.wkt,
            "geometry_type": self.geometry_type,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Placemark:
        wkt = data.get("wkt")
        return cls(
            index=int(data.get("index", 0)),  # type: ignore[arg-type]
            name=str(data.get("name", "")),
            wkt=str(wkt) if wkt is not None else None,
            geometry_type=str(data.get("geometry_type", "")),
            description=str(data.get("description", "")),
        )

    @property
    def has_geometry(self) -> bool:
        return self.wkt is not None


@dataclass(frozen=True, slots=True)
class SiteDocument:
    """A parsed KML site folder.

    Attributes:
        site_name: Folder (or document) name; may be empty.
        placemarks: Placemarks in document order.
        source_file: Name of the uploaded file.
    """

    site_name: str
    placemarks: list[Placemark] = field(default_factory=list)
    source_file: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "site_name": self.site_name,
            "placemarks": [p.to_dict() for p in self.placemarks],
            "source_file": self.source_file,
        }
