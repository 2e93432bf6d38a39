"""
目录服务与命令行测试（假向量化器 + 固定注册源，不访问网络、不加载模型）。
"""

import json
import logging

import pytest

from skill_search import cli
from skill_search.core.exceptions import StorageError
from skill_search.core.models import FetchedSkill
from skill_search.rag.service.catalog_service import CatalogService
from conftest import FakeEncoder, StaticSource


def _sources():
    return [
        StaticSource("anthropic", [
            FetchedSkill(external_id="pdf-tools", name="PDF Tools", popularity=120,
                         description="Extract text from PDF documents",
                         url="https://github.com/anthropics/skills/tree/main/skills/pdf-tools",
                         skill_md="# PDF Tools\nRead pdf files."),
            FetchedSkill(external_id="docx", name="Word Documents", popularity=50,
                         description="Create docx documents"),
        ]),
        StaticSource("skillssh", [
            FetchedSkill(external_id="someone/pdf-magic", name="PDF Magic", popularity=900,
                         description="From someone/repo"),
        ], trusted=False),
    ]


@pytest.fixture
def service(tmp_path):
    svc = CatalogService(data_dir=tmp_path, encoder=FakeEncoder(), sources=_sources())
    yield svc
    svc.close()


def test_ensure_synced_populates_empty_store(service):
    report = service.ensure_synced()
    assert report is not None
    assert service.store.count() == 3
    assert service.text_index.num_docs() == 3
    # 已有数据时不再自动同步
    assert service.ensure_synced() is None


def test_sync_rebuilds_text_index_and_embeds(service):
    report = service.sync()
    assert report.upserted == 3
    assert report.embedded == 3
    assert [h.slug for h in service.text_index.search("docx", 5)] == ["docx"]


def test_search_filters_trusted_and_truncates(service):
    service.sync()
    hits = service.search("pdf", limit=1)
    assert len(hits) == 1

    trusted = service.search("pdf", limit=5, trusted_only=True)
    assert trusted
    assert all(h.trusted for h in trusted)
    assert "someone__pdf-magic" not in [h.slug for h in trusted]

    assert service.search("pdf", limit=0) == []


def test_show_url_and_top(service):
    service.sync()
    assert service.show("pdf-tools").stars == 120
    assert service.url("pdf-tools") == "https://github.com/anthropics/skills/tree/main/skills/pdf-tools"
    assert service.show("missing") is None
    assert service.url("missing") is None
    assert [r.slug for r in service.top(1)] == ["someone__pdf-magic"]
    assert [r.slug for r in service.top(1, trusted_only=True)] == ["pdf-tools"]


def test_auto_initial_sync_can_be_disabled(tmp_path, monkeypatch):
    config_file = tmp_path / "app.json"
    config_file.write_text(json.dumps({"sync": {"auto_initial_sync": False}}), encoding="utf-8")
    monkeypatch.setenv("SKILL_SEARCH_CONFIG", str(config_file))
    cli.set_config_manager(None)

    with CatalogService(data_dir=tmp_path / "data", encoder=FakeEncoder(), sources=_sources()) as svc:
        assert svc.ensure_synced() is None
        assert svc.store.count() == 0


# ----------------------------------------------------------------------
# 命令行
# ----------------------------------------------------------------------


@pytest.fixture
def run_cli(tmp_path, monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(
        cli,
        "CatalogService",
        lambda data_dir=None: CatalogService(data_dir=data_dir, encoder=FakeEncoder(), sources=_sources()),
    )

    def _run(*argv):
        return cli.main(["--data-dir", str(tmp_path), *argv])

    yield _run
    root.handlers[:] = handlers
    root.setLevel(level)


def test_cli_search_text_output(run_cli, capsys):
    assert run_cli("search", "pdf", "-l", "5") == 0
    out = capsys.readouterr().out
    assert "PDF Tools ★120 (anthropic)" in out
    assert "[✓]" in out
    assert "https://github.com/anthropics/skills/tree/main/skills/pdf-tools" in out


def test_cli_search_json_output(run_cli, capsys):
    assert run_cli("search", "pdf", "--trusted", "--json") == 0
    results = json.loads(capsys.readouterr().out)
    assert results
    assert all(r["trusted"] for r in results)
    assert {"slug", "name", "registry", "description", "github_url", "stars", "trusted", "score"} <= set(results[0])


def test_cli_show_and_url(run_cli, capsys):
    assert run_cli("show", "pdf-tools") == 0
    out = capsys.readouterr().out
    assert "Name: PDF Tools" in out
    assert "Trusted: yes" in out
    assert "--- SKILL.md ---" in out

    assert run_cli("url", "docx") == 0
    assert capsys.readouterr().out.strip() == ""  # docx 没有 URL

    assert run_cli("url", "pdf-tools") == 0
    assert capsys.readouterr().out.strip().endswith("/skills/pdf-tools")


def test_cli_not_found_exits_1(run_cli, capsys):
    assert run_cli("show", "missing") == 1
    assert "Skill not found: missing" in capsys.readouterr().err
    assert run_cli("url", "missing") == 1


def test_cli_top(run_cli, capsys):
    assert run_cli("top", "-l", "2", "--trusted") == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("1. [✓] PDF Tools ★120 (anthropic)")


def test_cli_sync_prints_report(run_cli, capsys):
    assert run_cli("sync", "--force") == 0
    out = capsys.readouterr().out
    assert "anthropic: 2 synced, 0 skipped" in out
    assert "skillssh: 1 synced, 0 skipped" in out
    assert "embedded: 3" in out


def test_cli_storage_error_exits_1(run_cli, monkeypatch, capsys):
    def broken_top(self, limit, trusted_only=False):
        raise StorageError("database is locked")

    monkeypatch.setattr(CatalogService, "top", broken_top)
    assert run_cli("top") == 1
    assert "database is locked" in capsys.readouterr().err


def test_cli_usage_error_exits_2(run_cli):
    with pytest.raises(SystemExit) as exc:
        run_cli("search")
    assert exc.value.code == 2
