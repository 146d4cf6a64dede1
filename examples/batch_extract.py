#!/usr/bin/env python3
"""
批量提取示例 - 从文件读取 TikTok 视频链接并提取信息

用法:
    python examples/batch_extract.py links.txt
    python examples/batch_extract.py links.txt --json --output results/ --download
"""
import argparse
import asyncio
import json
import os
import sys

from tokscrape import ScraperError, Settings, TTScraper


async def run(args):
    with open(args.file) as f:
        urls = [line.strip() for line in f if line.strip() and not line.startswith("#")]

    if args.output:
        os.makedirs(args.output, exist_ok=True)

    print(f"📋 共 {len(urls)} 个链接\n", file=sys.stderr)

    videos = []
    async with TTScraper(settings=Settings.from_env()) as tt:
        for i, url in enumerate(urls, 1):
            print(f"[{i}/{len(urls)}] {url[:60]}...", file=sys.stderr)
            try:
                video = await tt.video(url)
            except ScraperError as e:
                print(f"  ❌ {e}", file=sys.stderr)
                continue
            videos.append(video)

            if args.json:
                print(json.dumps(video.to_dict(), ensure_ascii=False))
            else:
                print(f"{video.id}  {video.author}  ♥{video.likes}  {video.description[:40]}")

            if args.output:
                with open(os.path.join(args.output, f"{video.id}.json"), "w") as f:
                    json.dump(video.to_dict(), f, ensure_ascii=False, indent=2)

        if args.download and videos:
            report = await tt.download_videos(videos, args.output or "./downloads",
                                              unwatermarked=args.no_watermark)
            print(f"📥 下载 {len(report.downloaded)}/{len(report.results)}", file=sys.stderr)

    print(f"\n✅ 完成: {len(videos)}/{len(urls)} 成功", file=sys.stderr)


def main():
    parser = argparse.ArgumentParser(description="批量提取 TikTok 视频信息")
    parser.add_argument("file", help="链接文件（每行一个 URL）")
    parser.add_argument("--json", "-j", action="store_true", help="JSON 输出")
    parser.add_argument("--output", "-o", help="结果输出目录")
    parser.add_argument("--download", "-d", action="store_true", help="同时下载视频")
    parser.add_argument("--no-watermark", action="store_true", help="下载无水印版本")
    asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    main()
