"""
Unit tests for evidence intake validation, ledger mutations, and preview handle ownership.
Run from repo root: python -m pytest backend/tests/test_ledger.py -v
"""
from pathlib import Path

import pytest


def _product():
    from halalcheck.service import build_assessment
    return build_assessment("Bread mix", [
        {"name": "Wheat flour", "label": "HALAL", "confidence": 95},
        {"name": "E920 L-cysteine", "label": "VERIFY_SOURCE", "confidence": 45},
    ], clock=lambda: 0)


def test_attach_records_metadata(previews, make_upload):
    from halalcheck.evidence.ledger import VerificationLedger
    p = _product()
    ledger = VerificationLedger(previews, clock=lambda: 1234)
    rec = ledger.attach(p, "E920 L-cysteine", make_upload("letter.pdf", size=2048, declared="supplier letter"))
    assert rec.filename == "letter.pdf"
    assert rec.byte_size == 2048
    assert rec.mime_type == "application/pdf"
    assert rec.declared_type.value == "SUPPLIER_LETTER"
    assert rec.captured_at == 1234
    assert rec.preview_handle and Path(rec.preview_handle).exists()
    assert p.get_ingredient("E920 L-cysteine").evidence == [rec]


def test_attach_preserves_order(previews, make_upload):
    from halalcheck.evidence.ledger import VerificationLedger
    p = _product()
    ledger = VerificationLedger(previews)
    first = ledger.attach(p, "E920 L-cysteine", make_upload("a.pdf"))
    second = ledger.attach(p, "E920 L-cysteine", make_upload("b.pdf"))
    assert [e.id for e in p.get_ingredient("E920 L-cysteine").evidence] == [first.id, second.id]


def test_size_limit_boundary(previews):
    from halalcheck.config import EVIDENCE_MAX_BYTES
    from halalcheck.errors import FileRejected
    from halalcheck.evidence.ledger import EvidenceUpload, VerificationLedger
    p = _product()
    ledger = VerificationLedger(previews)
    ok = EvidenceUpload("max.png", "image/png", b"\0" * EVIDENCE_MAX_BYTES)
    ledger.attach(p, "E920 L-cysteine", ok)
    too_big = EvidenceUpload("big.png", "image/png", b"\0" * (EVIDENCE_MAX_BYTES + 1))
    with pytest.raises(FileRejected):
        ledger.attach(p, "E920 L-cysteine", too_big)
    assert len(p.get_ingredient("E920 L-cysteine").evidence) == 1


@pytest.mark.parametrize("mime", ["text/plain", "image/gif", "application/zip", ""])
def test_rejects_unsupported_type_without_mutation(previews, mime):
    from halalcheck.errors import FileRejected, ValidationError
    from halalcheck.evidence.ledger import EvidenceUpload, VerificationLedger
    p = _product()
    ledger = VerificationLedger(previews)
    with pytest.raises(FileRejected) as exc:
        ledger.attach(p, "E920 L-cysteine", EvidenceUpload("x", mime, b"data"))
    assert isinstance(exc.value, ValidationError)
    assert p.get_ingredient("E920 L-cysteine").evidence == []
    assert p.overall_status.value == "REQUIRES_REVIEW"
    assert previews.active_handles() == set()


@pytest.mark.parametrize("mime", ["application/pdf", "image/jpeg", "image/png", "IMAGE/JPEG", "application/pdf; charset=binary"])
def test_accepts_supported_types(previews, mime):
    from halalcheck.evidence.ledger import EvidenceUpload, VerificationLedger
    p = _product()
    rec = VerificationLedger(previews).attach(p, "E920 L-cysteine", EvidenceUpload("f", mime, b"data"))
    assert rec.mime_type in ("application/pdf", "image/jpeg", "image/png")


def test_unknown_ingredient(previews, make_upload):
    from halalcheck.errors import UnknownIngredient
    from halalcheck.evidence.ledger import VerificationLedger
    p = _product()
    ledger = VerificationLedger(previews)
    with pytest.raises(UnknownIngredient):
        ledger.attach(p, "Nope", make_upload())
    with pytest.raises(UnknownIngredient):
        ledger.remove(p, "Nope", "id")


def test_remove_releases_preview(previews, make_upload):
    from halalcheck.evidence.ledger import VerificationLedger
    p = _product()
    ledger = VerificationLedger(previews)
    rec = ledger.attach(p, "E920 L-cysteine", make_upload())
    handle = rec.preview_handle
    assert handle in previews.active_handles()
    ledger.remove(p, "E920 L-cysteine", rec.id)
    assert handle not in previews.active_handles()
    assert not Path(handle).exists()
    assert rec.preview_handle is None


def test_release_all_on_session_end(tmp_path):
    from halalcheck.evidence.preview import PreviewStore
    store = PreviewStore(tmp_path / "p")
    handles = [store.create(b"x", ".pdf") for _ in range(3)]
    assert store.release_all() == 3
    assert store.active_handles() == set()
    assert all(not Path(h).exists() for h in handles)
    # Idempotent
    store.release(handles[0])
    assert store.release_all() == 0


def test_owned_tempdir_removed():
    from halalcheck.evidence.preview import PreviewStore
    store = PreviewStore()
    root = store.root
    store.create(b"x")
    store.release_all()
    assert not root.exists()
