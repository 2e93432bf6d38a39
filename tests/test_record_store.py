"""
记录库单元测试（临时目录中的 SQLite + ChromaDB）。
"""

import pytest

from skill_search.core.exceptions import StorageError
from conftest import make_record


def test_upsert_assigns_stable_id(store):
    rid = store.upsert(make_record("pdf-tools"))
    assert rid > 0
    assert store.upsert(make_record("pdf-tools")) == rid
    assert store.count() == 1


def test_upsert_is_idempotent(store):
    record = make_record("pdf-tools", stars=120, description="Read and write PDF files")
    rid = store.upsert(record)
    first = store.get("anthropic", "pdf-tools")
    store.upsert(record)
    second = store.get("anthropic", "pdf-tools")
    assert first == second
    assert second.id == rid


def test_same_key_collapses_to_latest_values(store):
    rid = store.upsert(make_record("pdf-tools", stars=10, description="old"))
    store.upsert(make_record("pdf-tools", stars=99, description="new", version="2.0"))

    assert store.count() == 1
    record = store.get("anthropic", "pdf-tools")
    assert record.id == rid
    assert record.stars == 99
    assert record.description == "new"
    assert record.version == "2.0"


def test_same_slug_in_different_registries_are_distinct(store):
    first = store.upsert(make_record("git", registry="anthropic"))
    second = store.upsert(make_record("git", registry="skillssh"))
    assert first != second
    assert store.count() == 2
    # 跨注册源同名时取 id 最小者
    assert store.get_by_slug("git").registry == "anthropic"
    assert [r.slug for r in store.list_by_registry("skillssh")] == ["git"]


def test_get_missing_returns_none(store):
    assert store.get("anthropic", "nope") is None
    assert store.get_by_slug("nope") is None
    assert store.get_by_id(12345) is None


def test_needs_initial_sync(store):
    assert store.needs_initial_sync() is True
    store.upsert(make_record("pdf-tools"))
    assert store.needs_initial_sync() is False


def test_top_orders_by_stars_and_filters_trusted(store):
    store.upsert(make_record("low", stars=50))
    store.upsert(make_record("high", stars=120))
    store.upsert(make_record("community", registry="skillssh", stars=500, trusted=False))

    assert [r.slug for r in store.top(1)] == ["community"]
    assert [r.slug for r in store.top(10, trusted_only=True)] == ["high", "low"]
    assert store.top(0) == []


def test_update_stars_only_touches_popularity(store):
    store.upsert(make_record("pdf-tools", stars=1, description="keep me"))
    store.update_stars("anthropic", "pdf-tools", 42)
    record = store.get("anthropic", "pdf-tools")
    assert record.stars == 42
    assert record.description == "keep me"


def test_sync_state_roundtrip_and_clear(store):
    assert store.get_sync_state("anthropic") is None
    store.set_sync_state("anthropic", 1700000000, '"etag-1"')
    store.set_sync_state("anthropic", 1700000100, '"etag-2"')
    store.set_sync_state("skillssh", 1700000200)

    state = store.get_sync_state("anthropic")
    assert state.last_sync == 1700000100
    assert state.validator == '"etag-2"'
    assert store.get_sync_state("skillssh").validator is None

    store.clear_all_sync_state()
    assert store.get_sync_state("anthropic") is None
    assert store.get_sync_state("skillssh") is None


def test_embedding_bookkeeping_follows_content(store, fake_encoder):
    rid = store.upsert(make_record("pdf-tools"))
    assert [r.id for r in store.records_needing_embedding()] == [rid]

    store.store_embedding(rid, fake_encoder.embed_query("pdf"))
    assert store.records_needing_embedding() == []
    assert store.embedding_count() == 1

    # 只改热度不需要重新编码
    store.upsert(make_record("pdf-tools", stars=5))
    assert store.records_needing_embedding() == []

    # 内容变化后需要重新编码
    store.upsert(make_record("pdf-tools", description="now with OCR"))
    assert [r.id for r in store.records_needing_embedding()] == [rid]


def test_upsert_with_embedding_stores_vector(store, fake_encoder):
    record = make_record("pdf-tools", embedding=fake_encoder.embed_query("pdf tools"))
    store.upsert(record)
    assert store.embedding_count() == 1
    assert store.records_needing_embedding() == []


def test_upsert_rolls_back_when_vector_write_fails(store):
    store.upsert(make_record("pdf-tools", embedding=[1.0] * 8))

    # 维度不一致，向量库拒绝写入
    with pytest.raises(StorageError):
        store.upsert(make_record("docx", embedding=[1.0] * 4))
    assert store.get("anthropic", "docx") is None

    with pytest.raises(StorageError):
        store.upsert(make_record("pdf-tools", description="changed", embedding=[1.0] * 4))
    assert store.get("anthropic", "pdf-tools").description == "pdf-tools skill"
    assert store.records_needing_embedding() == []
    assert store.count() == 1
    assert store.embedding_count() == 1


def test_store_embedding_for_unknown_record_raises(store, fake_encoder):
    with pytest.raises(StorageError):
        store.store_embedding(999, fake_encoder.embed_query("x"))


def test_vector_search_orders_by_distance_and_filters_registry(store, fake_encoder):
    pdf = store.upsert(make_record("pdf-tools", name="PDF Tools", description="pdf documents"))
    git = store.upsert(make_record("git-helper", registry="skillssh", name="Git Helper", description="git commits"))
    for rid in (pdf, git):
        store.store_embedding(rid, fake_encoder.embed_query(fake_encoder.build_embed_text(store.get_by_id(rid))))

    hits = store.vector_search(fake_encoder.embed_query("pdf documents"), 5)
    assert [h[0] for h in hits] == [pdf, git]
    assert hits[0][1] <= hits[1][1]

    filtered = store.vector_search(fake_encoder.embed_query("pdf documents"), 5, registry="skillssh")
    assert [h[0] for h in filtered] == [git]

    assert store.vector_search(fake_encoder.embed_query("pdf"), 0) == []


def test_vector_search_without_vectors_is_empty(store, fake_encoder):
    store.upsert(make_record("pdf-tools"))
    assert store.vector_search(fake_encoder.embed_query("pdf"), 5) == []


def test_fuzzy_search_prefers_name_matches(store):
    store.upsert(make_record("docs", name="Docs Writer", description="works with pdf output", stars=500))
    store.upsert(make_record("pdf-tools", name="PDF Tools", description="documents", stars=1))
    store.upsert(make_record("unrelated", name="Other", description="nothing here"))

    assert [r.slug for r in store.fuzzy_search("pdf", 10)] == ["pdf-tools", "docs"]
    assert store.fuzzy_search("pdf", 0) == []
    assert store.fuzzy_search("   ", 10) == []


def test_fuzzy_search_treats_wildcards_literally(store):
    store.upsert(make_record("percent", name="Percent", description="100% coverage"))
    store.upsert(make_record("plain", name="Plain", description="no symbols"))
    assert [r.slug for r in store.fuzzy_search("100%", 10)] == ["percent"]
    assert store.fuzzy_search("%", 10)[0].slug == "percent"
    assert len(store.fuzzy_search("%", 10)) == 1
