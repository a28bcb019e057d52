"""Tests for the agent identity."""

import uuid

from agent_claim.config import Settings
from agent_claim.services.node_identity import load_node_identity


def test_configured_machine_guid(tmp_path):
    identity = load_node_identity(
        Settings(varlib_dir=tmp_path, machine_guid="configured-guid", hostname="h1")
    )
    assert identity.machine_guid == "configured-guid"
    assert identity.hostname == "h1"
    assert not (tmp_path / "machine_guid").exists()


def test_machine_guid_created_once(tmp_path):
    settings = Settings(varlib_dir=tmp_path, hostname="h1")

    first = load_node_identity(settings)
    second = load_node_identity(settings)

    assert uuid.UUID(first.machine_guid)
    assert first.machine_guid == second.machine_guid
    assert (tmp_path / "machine_guid").read_text() == f"{first.machine_guid}\n"


def test_invalid_machine_guid_file_is_replaced(tmp_path):
    (tmp_path / "machine_guid").write_text("garbage\n")

    identity = load_node_identity(Settings(varlib_dir=tmp_path, hostname="h1"))

    assert uuid.UUID(identity.machine_guid)
    assert identity.machine_guid != "garbage"


def test_agent_info(tmp_path):
    identity = load_node_identity(
        Settings(varlib_dir=tmp_path, machine_guid="g", hostname="h1", agent_version="1.2.3")
    )
    info = identity.agent_info()
    assert info.mg == "g"
    assert info.nm == "h1"
    assert info.version == "1.2.3"
    assert info.now > 0
