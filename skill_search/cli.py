import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from skill_search.config import ConfigManager, get_config_manager, set_config_manager
from skill_search.core.exceptions import SkillSearchError
from skill_search.core.models import SkillRecord
from skill_search.infra.logging import get_logger, setup_logging
from skill_search.rag.data_ingestion.sync import SyncReport
from skill_search.rag.retrieval import SearchHit
from skill_search.rag.service.catalog_service import CatalogService

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_ERROR = 1

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skill-search",
        description="Search skills across skills.sh, anthropic, and openai registries",
    )
    parser.add_argument("--data-dir", type=Path, default=None, help="数据目录（默认 ~/.local/share/skill-search）")
    parser.add_argument("--config", default=None, help="配置文件路径（默认 config/app_config.json）")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")

    sub = parser.add_subparsers(dest="command", required=True)

    p_sync = sub.add_parser("sync", help="同步全部注册源")
    p_sync.add_argument("--force", action="store_true", help="清空同步状态后重新同步")

    p_search = sub.add_parser("search", help="检索技能")
    p_search.add_argument("query", help="查询文本")
    p_search.add_argument("-l", "--limit", type=int, default=10, help="返回数量（默认 10）")
    p_search.add_argument("-r", "--registry", default=None, help="按注册源过滤（skillssh / anthropic / openai）")
    p_search.add_argument("--trusted", action="store_true", help="只显示权威注册源的技能")
    p_search.add_argument("--json", action="store_true", help="以 JSON 输出")

    p_show = sub.add_parser("show", help="显示技能详情")
    p_show.add_argument("slug")

    p_url = sub.add_parser("url", help="输出技能的安装地址")
    p_url.add_argument("slug")

    p_top = sub.add_parser("top", help="按热度列出技能")
    p_top.add_argument("-l", "--limit", type=int, default=20, help="返回数量（默认 20）")
    p_top.add_argument("--trusted", action="store_true", help="只显示权威注册源的技能")
    return parser


def _trust_icon(trusted: bool) -> str:
    return "✓" if trusted else "⚠"


def print_search_hits(hits: List[SearchHit], as_json: bool) -> None:
    if as_json:
        print(json.dumps([h.model_dump() for h in hits], indent=2, ensure_ascii=False))
        return
    for i, hit in enumerate(hits, start=1):
        stars = f" ★{hit.stars}" if hit.stars > 0 else ""
        print(f"{i}. [{_trust_icon(hit.trusted)}] {hit.name}{stars} ({hit.registry}) - {hit.description}")
        print(f"   {hit.github_url}")
        print()


def print_record(record: SkillRecord) -> None:
    print(f"Name: {record.name}")
    print(f"Registry: {record.registry}")
    print(f"Trusted: {'yes' if record.trusted else 'no'}")
    print(f"Stars: {record.stars}")
    if record.version:
        print(f"Version: {record.version}")
    print(f"Description: {record.description}")
    print(f"URL: {record.github_url}")
    if record.skill_md:
        print(f"\n--- SKILL.md ---\n{record.skill_md}")


def print_top(records: List[SkillRecord]) -> None:
    for i, r in enumerate(records, start=1):
        print(f"{i}. [{_trust_icon(r.trusted)}] {r.name} ★{r.stars} ({r.registry}) - {r.description}")


def print_sync_report(report: SyncReport) -> None:
    for r in report.registries:
        note = f" (fetch failed: {r.network_error})" if r.network_error else ""
        print(f"{r.registry}: {r.upserted} synced, {r.failed} skipped{note}")
    if report.embedding_error:
        print(f"embeddings skipped: {report.embedding_error}")
    else:
        print(f"embedded: {report.embedded}")


def run(args: argparse.Namespace, service: CatalogService) -> int:
    if args.command == "sync":
        print_sync_report(service.sync(force=args.force))
        return EXIT_OK

    service.ensure_synced()

    if args.command == "search":
        hits = service.search(args.query, args.limit, args.registry, trusted_only=args.trusted)
        print_search_hits(hits, args.json)
        return EXIT_OK

    if args.command == "show":
        record = service.show(args.slug)
        if record is None:
            print(f"Skill not found: {args.slug}", file=sys.stderr)
            return EXIT_NOT_FOUND
        print_record(record)
        return EXIT_OK

    if args.command == "url":
        url = service.url(args.slug)
        if url is None:
            print(f"Skill not found: {args.slug}", file=sys.stderr)
            return EXIT_NOT_FOUND
        print(url)
        return EXIT_OK

    if args.command == "top":
        print_top(service.top(args.limit, trusted_only=args.trusted))
        return EXIT_OK

    raise ValueError(f"未知命令: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        set_config_manager(ConfigManager(args.config))
    setup_logging(get_config_manager(), verbose=args.verbose)

    try:
        with CatalogService(data_dir=args.data_dir) as service:
            return run(args, service)
    except SkillSearchError as e:
        logger.debug("命令执行失败", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
