# cobranza/tests/test_merger.py
import pytest

from cobranza.services.merger import KEY_FIELD, SOURCE_FIELD, SourceState, StreamMerger


def _merger():
    emitted = []
    m = StreamMerger(emitted.append)
    return m, emitted


def test_same_document_from_two_sources_is_deduplicated():
    m, emitted = _merger()
    m.add_source("caja", "caja_diaria")
    m.add_source("gastos_sin_ruta", "caja_diaria")

    m.update("caja", [{"id": "1", "tipo": "gasto_admin"}])
    m.update("gastos_sin_ruta", [{"id": "1", "tipo": "gasto_admin"}, {"id": "2"}])

    docs = emitted[-1].docs
    assert [d[KEY_FIELD] for d in docs] == ["caja_diaria:1", "caja_diaria:2"]
    # en colisión gana la fuente registrada primero
    assert docs[0][SOURCE_FIELD] == "caja"


def test_same_id_in_different_collections_does_not_collide():
    m, emitted = _merger()
    m.add_source("caja", "caja_diaria")
    m.add_source("prestamos_directos", "prestamos")
    m.update("caja", [{"id": "7"}])
    m.update("prestamos_directos", [{"id": "7"}])
    assert len(emitted[-1].docs) == 2


def test_update_replaces_the_source_contribution():
    m, emitted = _merger()
    m.add_source("caja", "caja_diaria")
    m.update("caja", [{"id": "1"}, {"id": "2"}])
    m.update("caja", [{"id": "2"}])
    assert [d["id"] for d in emitted[-1].docs] == ["2"]
    assert emitted[-1].version == 2


def test_failed_source_keeps_previous_contribution():
    m, emitted = _merger()
    m.add_source("caja", "caja_diaria")
    m.update("caja", [{"id": "1"}])
    m.fail("caja", RuntimeError("offline"))

    assert m.state("caja") is SourceState.FAILED
    assert [d["id"] for d in m.snapshot().docs] == ["1"]
    # fallar no emite
    assert len(emitted) == 1


def test_documents_without_id_are_skipped():
    m, emitted = _merger()
    m.add_source("caja", "caja_diaria")
    m.update("caja", [{"tipo": "abono"}, {"id": "3"}])
    assert [d["id"] for d in emitted[-1].docs] == ["3"]


def test_pending_until_each_source_delivers():
    m, _ = _merger()
    m.add_source("a", "caja_diaria")
    m.add_source("b", "prestamos")
    m.update("a", [])
    assert m.any_in(SourceState.PENDING)
    m.update("b", [])
    assert not m.any_in(SourceState.PENDING)


def test_disposed_merger_ignores_updates():
    m, emitted = _merger()
    m.add_source("caja", "caja_diaria")
    m.dispose()
    m.update("caja", [{"id": "1"}])
    assert emitted == []
    assert m.state("caja") is SourceState.DISPOSED


def test_duplicate_source_name_raises():
    m, _ = _merger()
    m.add_source("caja", "caja_diaria")
    with pytest.raises(ValueError):
        m.add_source("caja", "caja_diaria")


def test_numeric_ids_merge_in_creation_order():
    m, emitted = _merger()
    m.add_source("caja", "caja_diaria")
    m.update("caja", [{"id": "10"}, {"id": "2"}, {"id": "x"}, {"id": "1"}])
    assert [d["id"] for d in emitted[-1].docs] == ["1", "2", "10", "x"]
