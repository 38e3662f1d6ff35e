from __future__ import annotations

import pytest

from erp_sync.infrastructure.external.legacy_sync.batch_writer import BatchWriter, split_batches
from erp_sync.infrastructure.external.legacy_sync.types import TargetDocument
from erp_sync.shared.exceptions.sync import WriteFailureException


def _docs(n: int, start: int = 0) -> list[TargetDocument]:
    return [TargetDocument(id=f"d{i}", data={"id": f"d{i}", "n": i}) for i in range(start, start + n)]


def test_split_batches_respects_size() -> None:
    sizes = [len(b) for b in split_batches(_docs(1201), 500)]
    assert sizes == [500, 500, 201]


def test_writer_rejects_batch_size_over_firestore_limit(store) -> None:
    with pytest.raises(ValueError):
        BatchWriter(store, max_batch_size=501)
    with pytest.raises(ValueError):
        BatchWriter(store, max_batch_size=0)


@pytest.mark.asyncio
async def test_write_batch_commits_in_sub_batches(store) -> None:
    written = await BatchWriter(store).write_batch("assets", _docs(1200))

    assert written == 1200
    assert store.commits == [("assets", 500), ("assets", 500), ("assets", 200)]
    assert len(store.collections["assets"]) == 1200


@pytest.mark.asyncio
async def test_write_is_merge_upsert(store) -> None:
    store.collections["assets"]["d0"] = {"id": "d0", "owner": "ana", "n": -1}

    await BatchWriter(store).write_batch("assets", _docs(1))

    assert store.collections["assets"]["d0"] == {"id": "d0", "owner": "ana", "n": 0}


@pytest.mark.asyncio
async def test_rejected_sub_batch_is_isolated(store) -> None:
    """Un documento inválido tumba solo su sub-batch; los previos quedan confirmados."""
    store.reject_ids.add("d700")

    with pytest.raises(WriteFailureException) as exc_info:
        await BatchWriter(store).write_batch("assets", _docs(1200))

    err = exc_info.value
    assert err.error_code == "WRITE_FAILURE"
    assert len(err.document_ids) == 500
    assert err.document_ids[0] == "d500"
    assert "d700" in err.document_ids
    assert len(store.collections["assets"]) == 500
    assert "d499" in store.collections["assets"]
    assert "d500" not in store.collections["assets"]


@pytest.mark.asyncio
async def test_unstorable_value_fails_its_sub_batch(store) -> None:
    docs = [TargetDocument(id="ok", data={"v": 1}), TargetDocument(id="bad", data={"v": object()})]

    with pytest.raises(WriteFailureException) as exc_info:
        await BatchWriter(store, max_batch_size=1).write_batch("assets", docs)

    assert exc_info.value.document_ids == ["bad"]
    assert "ok" in store.collections["assets"]
