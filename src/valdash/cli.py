from __future__ import annotations

import argparse
import asyncio
import json

from .config import load_config
from .logging_utils import log_json, setup_logging
from .service import DashboardService, build_engine, build_provider, match_summary
from .utils import parse_riot_id


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="valdash")
    parser.add_argument("--config", default="config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    player = sub.add_parser("player")
    player.add_argument("riot_id", help="Riot ID as Name#Tag")
    player.add_argument("--more", type=int, default=0, help="Extra pages to load after the first")

    match = sub.add_parser("match")
    match.add_argument("match_id")
    match.add_argument("--region")
    match.add_argument("--player", help="Riot ID to highlight in the scoreboard")

    cleanup = sub.add_parser("cleanup")
    cleanup.add_argument("puuid")

    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    logger = setup_logging()
    cfg = load_config(args.config)

    if args.command == "serve":
        import uvicorn

        from .web import create_app

        uvicorn.run(create_app(cfg, logger=logger), host=args.host, port=args.port)
        return

    engine = build_engine(cfg, logger=logger)
    if args.command == "cleanup":
        deleted = engine.cleanup_stale_seasons(args.puuid)
        log_json(logger, "cleanup_done", player_id=args.puuid, deleted=deleted)
        print(json.dumps({"deleted": deleted}))
        return

    service = DashboardService(cfg, build_provider(cfg, logger), engine, logger)

    async def _run() -> None:
        try:
            if args.command == "player":
                name, tag = parse_riot_id(args.riot_id)
                page = await service.load_player(name, tag)
                if page.found:
                    for _ in range(args.more):
                        await service.load_more(page.session)
                    page.stats = service.stats(page.session)
                print(json.dumps(page.to_dict(), indent=2, default=str))
            elif args.command == "match":
                record, error = await service.match_detail(args.region or cfg.region, args.match_id)
                if record is None:
                    out = {"error": error}
                else:
                    name, tag = parse_riot_id(args.player) if args.player else (None, None)
                    out = match_summary(record, name, tag)
                print(json.dumps(out, indent=2, default=str))
        finally:
            await service.close()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
