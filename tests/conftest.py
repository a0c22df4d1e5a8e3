import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

ROOT_DIR = Path(__file__).resolve().parents[1]
TEST_DB_PATH = ROOT_DIR / "tests" / ".ugc_missions_test.db"
os.environ.setdefault("DATABASE_URL", f"sqlite:///{TEST_DB_PATH}")
sys.path.insert(0, str(ROOT_DIR))

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import delete

from ugc_missions.auth.dependencies import AuthContext
from ugc_missions.config import settings
from ugc_missions.db.base import Base, SessionLocal, engine
from ugc_missions.db.enums import PartyRoleEnum, StepTypeEnum
from ugc_missions.db.repositories.parties import PartiesRepository
from ugc_missions.main import app
from ugc_missions.services.contracts import mandate_contracts
from ugc_missions.services.missions import MissionBrief, MissionEngine


@pytest.fixture(scope="session", autouse=True)
def apply_migrations() -> None:
    if settings.is_sqlite and TEST_DB_PATH.exists():
        engine.dispose()
        TEST_DB_PATH.unlink()
    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


@pytest.fixture(autouse=True)
def clean_tables(apply_migrations):
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(delete(table))


@pytest.fixture()
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def api_client() -> TestClient:
    return TestClient(app)


@dataclass
class Cast:
    admin: AuthContext
    operator: AuthContext
    brand: AuthContext
    other_brand: AuthContext
    creator: AuthContext
    other_creator: AuthContext


@pytest.fixture()
def cast(db_session) -> Cast:
    repo = PartiesRepository(db_session)

    def _actor(role: PartyRoleEnum, full_name: str, email: str, ip: str, **fields) -> AuthContext:
        party = repo.create(role, full_name, email, **fields)
        return AuthContext(user_id=party.id, role=role, network_address=ip)

    members = Cast(
        admin=_actor(PartyRoleEnum.admin, "Admin MOSH", "admin@agencemosh.ch", "198.51.100.1"),
        operator=_actor(PartyRoleEnum.operator, "Léa Martin", "lea@agencemosh.ch", "198.51.100.2"),
        brand=_actor(
            PartyRoleEnum.brand,
            "Camille Roux",
            "camille@alpenglow.ch",
            "198.51.100.3",
            company_name="Alpenglow SA",
            address="Rue du Lac 12, 1003 Lausanne",
        ),
        other_brand=_actor(
            PartyRoleEnum.brand,
            "Nils Berger",
            "nils@bergkaffee.ch",
            "198.51.100.4",
            company_name="Bergkaffee GmbH",
        ),
        creator=_actor(
            PartyRoleEnum.creator,
            "Noémie Favre",
            "noemie@example.ch",
            "203.0.113.9",
            address="Chemin des Vignes 4, 1820 Montreux",
        ),
        other_creator=_actor(PartyRoleEnum.creator, "Luca Rossi", "luca@example.ch", "203.0.113.10"),
    )
    db_session.commit()
    return members


@pytest.fixture()
def mission_engine(db_session) -> MissionEngine:
    return MissionEngine(db_session)


@pytest.fixture()
def make_mission(mission_engine, cast) -> Callable[..., str]:
    def _make(pipeline: str = "expanded", budget=500, actor: AuthContext | None = None, **fields) -> str:
        brief = MissionBrief(
            title=fields.pop("title", "Campagne printemps"),
            product_name=fields.pop("product_name", "Sérum Glacier"),
            format=fields.pop("format", "9_16"),
            script_type=fields.pop("script_type", "testimonial"),
            rights_usage=fields.pop("rights_usage", "organic"),
            budget=budget,
            pipeline=pipeline,
            **fields,
        )
        return mission_engine.create_mission(brief, actor or cast.brand)["id"]

    return _make


@pytest.fixture()
def select_creator(mission_engine, cast) -> Callable[[str], None]:
    """Brief received, two creators proposed, the first one assigned by the brand."""

    def _select(mission_id: str) -> None:
        mission_engine.complete_step(mission_id, StepTypeEnum.brief_received, cast.operator)
        mission_engine.propose_creators(
            mission_id, [cast.creator.user_id, cast.other_creator.user_id], cast.operator
        )
        mission_engine.assign_creator(mission_id, cast.creator.user_id, cast.brand)

    return _select


@pytest.fixture()
def prepare_delivery(mission_engine, cast, db_session, select_creator) -> Callable[[str], None]:
    """Drive an expanded mission up to the point where the video can be sent to the brand."""

    def _prepare(mission_id: str, amount=300) -> None:
        select_creator(mission_id)
        mission_engine.save_script(mission_id, "Hook, démonstration, appel à l'action.", "validated", cast.operator)
        mission_engine.send_script_to_brand(mission_id, cast.operator)
        mission_engine.approve_script(mission_id, cast.brand)
        mission_engine.send_mission_to_creator(mission_id, amount, cast.operator)
        mandate_contracts(db_session).sign(mission_id, cast.creator)
        mission_engine.complete_step(mission_id, StepTypeEnum.creator_accepted, cast.creator)
        mission_engine.complete_step(mission_id, StepTypeEnum.creator_shooting, cast.creator)
        mission_engine.submit_video(mission_id, "videos/final-cut.mp4", cast.creator)
        mission_engine.complete_step(mission_id, StepTypeEnum.video_validated, cast.operator)

    return _prepare


