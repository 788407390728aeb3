"""Shared pytest fixtures for the riparian service test suite."""

from pathlib import Path

import pytest

from scd_riparian.core.config import RiparianConfig
from scd_riparian.core.constants import (
    LAND_TYPE_SEGMENT,
    LAND_TYPE_SITE,
    ROLE_FARM_MANAGER,
    ROLE_FARM_VIEWER,
    ROLE_FARM_WORKER,
    VOCABULARY_LOG_CATEGORY,
    VOCABULARY_MATERIAL_TYPE,
)
from scd_riparian.models.entities import Asset, Term, User
from scd_riparian.storage.memory import InMemoryFarmRepository

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


# ---------------------------------------------------------------------------
# Sample KML file fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def site_folder_kml(data_dir: Path) -> Path:
    """Folder 'Cedar Creek' with a line, a polygon with a hole and an unnamed point."""
    return data_dir / "01_site_folder_segments.kml"


@pytest.fixture()
def document_placemarks_kml(data_dir: Path) -> Path:
    """Placemarks directly under Document (no Folder), one MultiGeometry."""
    return data_dir / "02_document_placemarks_no_folder.kml"


@pytest.fixture()
def bad_geometry_kml(data_dir: Path) -> Path:
    """Folder with one good, one out-of-range and one geometry-less placemark."""
    return data_dir / "03_bad_geometry.kml"


@pytest.fixture()
def empty_kml(data_dir: Path) -> Path:
    """Valid KML whose folder has no placemarks."""
    return data_dir / "04_empty_no_placemarks.kml"


@pytest.fixture()
def not_xml_kml(data_dir: Path) -> Path:
    """A file that is not valid XML."""
    return data_dir / "05_not_xml.kml"


@pytest.fixture()
def not_kml_root(data_dir: Path) -> Path:
    """Well-formed XML whose root is not <kml>."""
    return data_dir / "06_not_kml_root.kml"


# ---------------------------------------------------------------------------
# Farm fixtures
# ---------------------------------------------------------------------------

ADMIN = User(id="1", name="admin", roles=frozenset({ROLE_FARM_MANAGER}))
MANAGER = User(
    id="2",
    name="Maria Manager",
    roles=frozenset({ROLE_FARM_MANAGER}),
    timezone="America/Los_Angeles",
)
WORKER = User(id="3", name="crew 10", roles=frozenset({ROLE_FARM_WORKER}))
WORKER_2 = User(id="4", name="crew 2", roles=frozenset({ROLE_FARM_WORKER}))
VIEWER = User(id="5", name="Vic Viewer", roles=frozenset({ROLE_FARM_VIEWER}))
INACTIVE = User(id="6", name="Ina Inactive", roles=frozenset({ROLE_FARM_WORKER}), active=False)

GLYPHOSATE = Term(id="m1", name="Glyphosate", vocabulary=VOCABULARY_MATERIAL_TYPE)
TRICLOPYR = Term(id="m2", name="Triclopyr", vocabulary=VOCABULARY_MATERIAL_TYPE)
MAINTENANCE = Term(id="c1", name="Maintenance", vocabulary=VOCABULARY_LOG_CATEGORY)


@pytest.fixture()
def settings() -> RiparianConfig:
    """Default configuration with a Pacific default timezone."""
    return RiparianConfig(default_timezone="America/Los_Angeles")


@pytest.fixture()
def repository() -> InMemoryFarmRepository:
    """In-memory farm with users, material / category terms, a site and its segments.

    Site ``"1"`` (Cedar Creek) has segments ``"3"``, ``"4"`` and an
    archived segment ``"5"``; site ``"2"`` (Tryon Creek) has segment ``"6"``.
    """
    repo = InMemoryFarmRepository(
        users=[ADMIN, MANAGER, WORKER, WORKER_2, VIEWER, INACTIVE],
        terms=[GLYPHOSATE, TRICLOPYR, MAINTENANCE],
    )
    site = repo.create_asset(Asset(name="Cedar Creek", land_type=LAND_TYPE_SITE))
    other = repo.create_asset(Asset(name="Tryon Creek", land_type=LAND_TYPE_SITE))
    repo.create_asset(Asset(name="Upper bank", land_type=LAND_TYPE_SEGMENT, parent_id=site.id))
    repo.create_asset(Asset(name="Lower bank", land_type=LAND_TYPE_SEGMENT, parent_id=site.id))
    repo.create_asset(
        Asset(
            name="Old fence line",
            land_type=LAND_TYPE_SEGMENT,
            parent_id=site.id,
            status="archived",
        )
    )
    repo.create_asset(Asset(name="Tryon reach", land_type=LAND_TYPE_SEGMENT, parent_id=other.id))
    return repo
