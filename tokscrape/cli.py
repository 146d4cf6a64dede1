import argparse
import asyncio
import json
import logging
import sys

from .config import Settings, load_cookie_file
from .errors import ScraperError
from .http import NETWORK_EXCEPTIONS
from .scraper import TTScraper

logger = logging.getLogger("tokscrape")

COMMANDS = ["video", "user", "music", "hashtag", "videos", "download", "nowm"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tokscrape",
        description="tokscrape - TikTok 视频/用户/音乐信息提取与下载",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  tokscrape video "https://www.tiktok.com/@user/video/123" --json
  tokscrape user tiktok
  tokscrape hashtag cats
  tokscrape download someuser --no-watermark --output ./media
""",
    )
    parser.add_argument("command", choices=COMMANDS, help="要执行的操作")
    parser.add_argument("target", help="视频链接 / 用户名 / 话题 / 视频 ID")
    parser.add_argument("--json", "-j", action="store_true", help="JSON 格式输出")
    parser.add_argument("--no-watermark", action="store_true", help="解析无水印地址")
    parser.add_argument("--output", "-o", default=None, help="下载目录 (默认 ./<用户名>)")
    parser.add_argument("--cookie", default=None, help="原样发送的 Cookie 头")
    parser.add_argument("--cookie-file", default=None, help="从文件读取 Cookie")
    parser.add_argument("--timeout", type=float, default=None, help="单次请求超时（秒）")
    parser.add_argument("--max-pages", type=int, default=None, help="作品列表最多翻页数")
    parser.add_argument("--concurrency", type=int, default=None, help="同时下载数 (默认 1)")
    parser.add_argument("--verbose", "-v", action="store_true", help="详细日志")
    return parser


def settings_from_args(args) -> Settings:
    cookies = args.cookie
    if cookies is None and args.cookie_file:
        cookies = load_cookie_file(args.cookie_file)
    return Settings.from_env(
        cookies=cookies,
        timeout=args.timeout,
        max_pages=args.max_pages,
        concurrency=args.concurrency,
    )


def _print(obj, as_json: bool):
    if as_json:
        print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))
        return
    if isinstance(obj, dict):
        for k, v in obj.items():
            if v not in ("", None, 0, False):
                print(f"  {k}: {v}")
    else:
        print(obj)


async def run(args) -> int:
    async with TTScraper(settings=settings_from_args(args)) as tt:
        if args.command == "video":
            _print((await tt.video(args.target, no_watermark=args.no_watermark)).to_dict(), args.json)
        elif args.command == "user":
            _print((await tt.user(args.target)).to_dict(), args.json)
        elif args.command == "music":
            _print((await tt.music(args.target)).to_dict(), args.json)
        elif args.command == "hashtag":
            videos = await tt.hashtag(args.target)
            _print([v.to_dict() for v in videos] if args.json else f"共 {len(videos)} 个作品", args.json)
        elif args.command == "videos":
            videos = await tt.user_videos(args.target)
            _print([v.to_dict() for v in videos] if args.json else f"共 {len(videos)} 个作品", args.json)
        elif args.command == "nowm":
            print(await tt.no_watermark(args.target))
        elif args.command == "download":
            report = await tt.download_all_from_user(
                args.target, path=args.output, unwatermarked=args.no_watermark)
            if args.json:
                _print(report.to_dict(), True)
            else:
                print(f"✅ 下载完成 {len(report.downloaded)}/{len(report.results)} → {report.destination}")
                for r in report.skipped + report.failed:
                    print(f"  ✗ {r.video_id} [{r.status}] {r.reason}")
            return 0 if report.ok else 2
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    if args.verbose:
        logging.getLogger("tokscrape").setLevel(logging.DEBUG)

    try:
        code = asyncio.run(run(args))
    except (ScraperError, ValueError) + NETWORK_EXCEPTIONS as e:
        # CLI catches library errors and prints a friendly message.
        print(f"ERROR: {e}", file=sys.stderr)
        raise SystemExit(1)
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
