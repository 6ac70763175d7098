"""
Загрузка локальных файлов в API и ожидание результата.
Используется для ручных проверок и dev-отладки.
"""

from __future__ import annotations

import argparse
import json
import mimetypes
import os
import sys
import time
from pathlib import Path

import requests

TERMINAL = {"completed", "failed"}


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Upload media files and poll task results")
    p.add_argument("paths", nargs="+", help="Image/video files (max 5)")
    p.add_argument(
        "--base-url", default=os.getenv("MEDIA_AGENT_BASE_URL", "http://127.0.0.1:8080")
    )
    p.add_argument("--batch", action="store_true", help="Analyze all files as one sequence")
    p.add_argument("--max-chunk-size", type=int, default=None)
    p.add_argument("--max-parallel", type=int, default=None)
    p.add_argument("--timeout-sec", type=float, default=600.0)
    p.add_argument("--poll-sec", type=float, default=2.0)
    return p.parse_args()


def _upload(args: argparse.Namespace) -> list[str]:
    files = []
    for raw in args.paths:
        path = Path(raw)
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        files.append(("files", (path.name, path.read_bytes(), mime)))

    data: dict[str, str] = {"batch_analyze": "true" if args.batch else "false"}
    if args.max_chunk_size:
        data["max_chunk_size"] = str(args.max_chunk_size)
    if args.max_parallel:
        data["max_parallel"] = str(args.max_parallel)

    resp = requests.post(f"{args.base_url}/v1/upload", files=files, data=data, timeout=60)
    resp.raise_for_status()
    return list(resp.json()["task_ids"])


def _wait(args: argparse.Namespace, task_id: str) -> dict:
    deadline = time.monotonic() + args.timeout_sec
    while True:
        resp = requests.get(f"{args.base_url}/v1/tasks/{task_id}", timeout=10)
        resp.raise_for_status()
        body = resp.json()
        if body["status"] in TERMINAL or time.monotonic() >= deadline:
            return body
        time.sleep(args.poll_sec)


def main() -> int:
    args = _parse_args()
    try:
        task_ids = _upload(args)
    except (OSError, requests.RequestException) as e:
        print(f"error: upload failed: {e}", file=sys.stderr)
        return 2

    exit_code = 0
    for task_id in task_ids:
        body = _wait(args, task_id)
        print(json.dumps(body, indent=2, ensure_ascii=False))
        if body["status"] != "completed":
            exit_code = 1
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
