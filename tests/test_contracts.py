import re

import pytest

from ugc_missions.config import settings
from ugc_missions.db.base import unit_of_work
from ugc_missions.db.enums import ContractStatusEnum
from ugc_missions.documents import formatting
from ugc_missions.errors import InvalidInputError, InvalidTransitionError, NotFoundError, UnauthorizedError
from ugc_missions.services.contracts import contract_signatures, direct_contracts, mandate_contracts
from ugc_missions.services.document_storage import DocumentStorage


@pytest.fixture()
def mandate(db_session):
    return mandate_contracts(db_session)


@pytest.fixture()
def direct(db_session):
    return direct_contracts(db_session)


@pytest.fixture()
def proposed_application(mission_engine, make_mission, cast):
    """A mission with the creator proposed but not yet selected; returns (mission_id, application_id)."""
    mission_id = make_mission(description="Trois vidéos courtes autour du lancement.")
    mission_engine.complete_step(mission_id, "brief_received", cast.operator)
    result = mission_engine.propose_creators(mission_id, [cast.creator.user_id], cast.operator)
    return mission_id, result["applications"][0]["id"]


def test_mandate_requires_selected_creator_and_positive_amount(mandate, make_mission, cast):
    mission_id = make_mission()
    with pytest.raises(InvalidInputError):
        mandate.create(mission_id, 0, cast.operator)
    with pytest.raises(InvalidInputError):
        mandate.create(mission_id, "abc", cast.operator)
    with pytest.raises(InvalidInputError):
        mandate.create(mission_id, 300, cast.operator)
    with pytest.raises(NotFoundError):
        mandate.create("00000000-0000-0000-0000-000000000000", 300, cast.operator)
    assert mandate.get(mission_id) == {"kind": "mandate", "mission_id": mission_id, "state": "none"}


def test_mandate_create_records_initiator_signature(mandate, make_mission, cast, select_creator):
    mission_id = make_mission()
    select_creator(mission_id)
    with pytest.raises(UnauthorizedError):
        mandate.create(mission_id, 300, cast.brand)

    contract = mandate.create(mission_id, "300", cast.operator)
    assert contract.status == ContractStatusEnum.pending_counterparty_signature
    assert re.match(r"^MOSH-\d+-[0-9A-F]{8}$", contract.contract_number)
    assert contract.initiator_signed_at is not None
    assert contract.counterparty_signed_at is None
    assert contract.counterparty_id == cast.creator.user_id
    assert contract.variables["amount_ttc"] == "300.00"
    assert contract.variables["amount_ht"] == "277.52"
    assert contract.variables["vat_amount"] == "22.48"
    assert contract.variables["deadline"] == "À définir"
    assert "Noémie Favre" in contract.document_text
    assert contract.document_text.count(formatting.PENDING_SIGNATURE) == 2

    with pytest.raises(InvalidTransitionError):
        mandate.create(mission_id, 300, cast.operator)


def test_sign_without_contract_is_invalid(mandate, make_mission, cast):
    mission_id = make_mission()
    with pytest.raises(InvalidTransitionError):
        mandate.sign(mission_id, cast.creator)


def test_counterparty_signature_activates_mandate(mandate, make_mission, cast, select_creator):
    mission_id = make_mission()
    select_creator(mission_id)
    mandate.create(mission_id, 300, cast.operator)

    unchanged = mandate.sign(mission_id, cast.operator)
    assert unchanged.status == ContractStatusEnum.pending_counterparty_signature
    with pytest.raises(UnauthorizedError):
        mandate.sign(mission_id, cast.other_creator)
    with pytest.raises(UnauthorizedError):
        mandate.sign(mission_id, cast.brand)

    contract = mandate.sign(mission_id, cast.creator)
    assert contract.status == ContractStatusEnum.active
    assert contract.counterparty_network_address == "203.0.113.9"
    assert formatting.PENDING_SIGNATURE not in contract.signed_document_text
    assert "203.0.113.9" in contract.signed_document_text
    assert mandate.get(mission_id)["state"] == "active"

    with pytest.raises(InvalidTransitionError):
        mandate.sign(mission_id, cast.creator)


def test_rendered_text_is_reproducible(db_session, mandate, make_mission, cast, select_creator):
    mission_id = make_mission()
    select_creator(mission_id)
    contract = mandate.create(mission_id, 450, cast.operator)
    db_session.expire_all()
    assert mandate.render_text(mission_id) == contract.document_text
    assert mandate.render_text(mission_id) == mandate.render_text(mission_id)

    stored = mandate.repo.get(mission_id)
    rebuilt = mandate.render_preview({**stored.variables, **contract_signatures(stored)})
    assert rebuilt == stored.document_text

    mandate.sign(mission_id, cast.creator)
    db_session.expire_all()
    signed = mandate.repo.get(mission_id)
    assert mandate.render_text(mission_id) == signed.signed_document_text
    assert signed.document_text == contract.document_text
    assert mandate.render_text("00000000-0000-0000-0000-000000000000") is None


def test_preview_renders_pending_signatures(mandate, make_mission, cast, select_creator):
    mission_id = make_mission()
    select_creator(mission_id)
    preview = mandate.preview_for(mission_id, 300)
    assert "CONTRAT DE MANDAT" in preview
    assert preview.count(formatting.PENDING_SIGNATURE) == 3
    assert mandate.get(mission_id)["state"] == "none"


def test_direct_contract_lifecycle(direct, mission_engine, proposed_application, cast):
    mission_id, application_id = proposed_application
    with pytest.raises(UnauthorizedError):
        direct.create(application_id, 400, cast.other_brand)
    with pytest.raises(UnauthorizedError):
        direct.create(application_id, 400, cast.operator)

    contract = direct.create(application_id, 400, cast.brand)
    assert re.match(r"^UGC-\d+-[0-9A-F]{8}$", contract.contract_number)
    assert contract.initiator_network_address == "198.51.100.3"
    assert "Alpenglow SA" in contract.document_text
    assert "198.51.100.3" in contract.document_text
    applications = mission_engine.list_applications(mission_id, cast.operator)
    assert applications[0]["status"] == "accepted"

    with pytest.raises(InvalidTransitionError):
        direct.create(application_id, 400, cast.brand)
    with pytest.raises(UnauthorizedError):
        direct.sign(application_id, cast.other_brand)

    assert direct.sign(application_id, cast.brand).status == ContractStatusEnum.pending_counterparty_signature
    signed = direct.sign(application_id, cast.creator)
    assert signed.status == ContractStatusEnum.active
    assert "203.0.113.9" in signed.signed_document_text
    serialized = direct.serialize(signed)
    assert serialized["application_id"] == application_id
    assert serialized["counterparty"]["network_address"] == "203.0.113.9"
    assert serialized["amount"] == 400.0


def test_direct_contract_rejected_application(direct, make_mission, cast, select_creator, mission_engine):
    mission_id = make_mission()
    select_creator(mission_id)
    rejected = next(
        application
        for application in mission_engine.list_applications(mission_id, cast.operator)
        if application["creator_id"] == cast.other_creator.user_id
    )
    with pytest.raises(InvalidTransitionError):
        direct.create(rejected["id"], 400, cast.brand)
    with pytest.raises(NotFoundError):
        direct.create("00000000-0000-0000-0000-000000000000", 400, cast.brand)
    assert direct.get(rejected["id"])["state"] == "none"


def test_contracts_are_frozen_once_the_mission_is_cancelled(direct, mission_engine, proposed_application, cast):
    mission_id, application_id = proposed_application
    mission_engine.cancel_mission(mission_id, "Lancement reporté", cast.brand)
    with pytest.raises(InvalidTransitionError):
        direct.create(application_id, 250, cast.brand)
    assert direct.get(application_id)["state"] == "none"


def test_pending_contract_cannot_be_signed_after_cancellation(
    mandate, mission_engine, make_mission, cast, select_creator
):
    mission_id = make_mission()
    select_creator(mission_id)
    mandate.create(mission_id, 300, cast.operator)
    mission_engine.cancel_mission(mission_id, None, cast.operator)

    with pytest.raises(InvalidTransitionError):
        mandate.sign(mission_id, cast.creator)
    assert mandate.get(mission_id)["state"] == "pending_counterparty_signature"


def test_direct_and_mandate_contracts_coexist(direct, mandate, make_mission, cast, select_creator, mission_engine):
    mission_id = make_mission()
    select_creator(mission_id)
    accepted = next(
        application
        for application in mission_engine.list_applications(mission_id, cast.operator)
        if application["status"] == "accepted"
    )
    direct.create(accepted["id"], 400, cast.brand)
    mandate.create(mission_id, 300, cast.operator)
    assert direct.get(accepted["id"])["state"] == "pending_counterparty_signature"
    assert mandate.get(mission_id)["state"] == "pending_counterparty_signature"


def test_documents_are_stored_when_storage_is_configured(
    monkeypatch, tmp_path, mandate, make_mission, cast, select_creator
):
    monkeypatch.setattr(settings, "DOCUMENT_STORAGE_DIR", str(tmp_path))
    mission_id = make_mission()
    select_creator(mission_id)
    contract = mandate.create(mission_id, 300, cast.operator)
    assert contract.document_reference == f"contracts/{contract.contract_number}.txt"

    storage = DocumentStorage(tmp_path)
    assert storage.read_text(contract.document_reference) == contract.document_text

    signed = mandate.sign(mission_id, cast.creator)
    assert signed.document_reference == f"contracts/{signed.contract_number}-signed.txt"
    assert storage.read_text(signed.document_reference) == signed.signed_document_text


def test_document_storage_is_write_once(tmp_path):
    storage = DocumentStorage(tmp_path)
    key = storage.put_text(kind="invoices", number="MOSH-2026-0001", text="première version")
    assert key == "invoices/MOSH-2026-0001.txt"
    assert storage.put_text(kind="invoices", number="MOSH-2026-0001", text="seconde version") == key
    assert storage.read_text(key) == "première version"
    assert storage.read_text("invoices/missing.txt") is None
    assert DocumentStorage.build_key(kind="contracts", number="a/b c") == "contracts/a_b_c.txt"


def test_documents_are_written_only_after_commit(
    monkeypatch, tmp_path, db_session, mandate, make_mission, cast, select_creator
):
    monkeypatch.setattr(settings, "DOCUMENT_STORAGE_DIR", str(tmp_path))
    mission_id = make_mission()
    select_creator(mission_id)

    with pytest.raises(RuntimeError):
        with unit_of_work(db_session):
            abandoned = mandate.create(mission_id, 300, cast.operator)
            reference = abandoned.document_reference
            raise RuntimeError("request aborted")
    assert not (tmp_path / reference).exists()
    assert mandate.get(mission_id)["state"] == "none"

    contract = mandate.create(mission_id, 450, cast.operator)
    assert DocumentStorage(tmp_path).read_text(contract.document_reference) == contract.document_text
