"""
Tests for lazy collection provisioning.
"""

from unittest.mock import AsyncMock

import pytest

from vecmem.errors import BackendFailure, InvalidCollectionName, UnknownModel
from vecmem.provisioner import SchemaProvisioner, validate_collection_name

from .conftest import FakeBackend


@pytest.mark.parametrize("name", ["memories", "_private", "Notes2024", "a_b_c"])
def test_structural_names_accepted(name):
    assert validate_collection_name(name, structural=True) == name


@pytest.mark.parametrize("name", ["2fast", "with-dash", "with space", "semi;colon", ""])
def test_structural_names_rejected(name):
    with pytest.raises(InvalidCollectionName):
        validate_collection_name(name, structural=True)


def test_free_form_names_on_vector_stores():
    assert validate_collection_name("my-notes 2024", structural=False) == "my-notes 2024"
    with pytest.raises(InvalidCollectionName):
        validate_collection_name("   ", structural=False)


@pytest.mark.asyncio
async def test_creates_once_and_activates_every_time(backend):
    provisioner = SchemaProvisioner(backend, "openai/text-embedding-3-small")

    await provisioner.ensure("notes")
    await provisioner.ensure("notes")

    assert backend.created == ["notes"]
    assert backend.dimensions["notes"] == 1536
    assert backend.activated == ["notes", "notes"]


@pytest.mark.asyncio
async def test_existing_collection_is_not_recreated(backend):
    backend.collections["notes"] = {}
    provisioner = SchemaProvisioner(backend, "google/text-embedding-004")

    await provisioner.ensure("notes")

    assert backend.created == []
    assert backend.activated == ["notes"]


@pytest.mark.asyncio
async def test_unknown_model_fails_creation(backend):
    provisioner = SchemaProvisioner(backend, "nobody/nothing")
    with pytest.raises(UnknownModel) as exc_info:
        await provisioner.ensure("notes")
    assert "google/text-embedding-004" in exc_info.value.available_models


@pytest.mark.asyncio
async def test_benign_creation_race_is_ignored():
    """A failed create is fine when the collection exists afterwards."""
    backend = FakeBackend()
    backend.has_collection = AsyncMock(side_effect=[False, True])
    backend.create_collection = AsyncMock(
        side_effect=BackendFailure("create_collection", "already exists")
    )
    provisioner = SchemaProvisioner(backend, "google/text-embedding-004")

    await provisioner.ensure("notes")

    assert backend.activated == ["notes"]


@pytest.mark.asyncio
async def test_real_creation_failure_propagates():
    backend = FakeBackend()
    backend.has_collection = AsyncMock(return_value=False)
    backend.create_collection = AsyncMock(
        side_effect=BackendFailure("create_collection", "permission denied")
    )
    provisioner = SchemaProvisioner(backend, "google/text-embedding-004")

    with pytest.raises(BackendFailure, match="permission denied"):
        await provisioner.ensure("notes")


@pytest.mark.asyncio
async def test_invalidate_forces_recheck(backend):
    provisioner = SchemaProvisioner(backend, "google/text-embedding-004")
    await provisioner.ensure("notes")
    backend.collections.clear()

    provisioner.invalidate("notes")
    await provisioner.ensure("notes")

    assert backend.created == ["notes", "notes"]
