#!/usr/bin/env python3
"""
Image Edit Client
Uploads an image to a running API, submits an edit prompt and polls the job
until it finishes.

Usage:
    python scripts/edit_image.py photo.jpg "Make the sky a dramatic sunset"
    python scripts/edit_image.py photo.png "Enhance colors" --conversation conv_abc123
    python scripts/edit_image.py --job msg_abc123            # Only poll an existing job
"""

import argparse
import asyncio
import logging
import mimetypes
import os
import signal
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx

from app.client.poller import JobPoller
from app.core.logging import setup_logging

logger = logging.getLogger("edit_image")


async def upload(client: httpx.AsyncClient, path: Path) -> str:
    """Upload a local image and return its API URL."""
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    with open(path, "rb") as f:
        response = await client.post("/api/upload", files={"image": (path.name, f, mime_type)})
    response.raise_for_status()
    data = response.json()
    logger.info(f"Uploaded {path.name} ({data['size']} bytes) -> {data['imageUrl']}")
    return data["imageUrl"]


async def ensure_conversation(client: httpx.AsyncClient, conversation_id: Optional[str], title: str) -> str:
    if conversation_id:
        return conversation_id
    response = await client.post("/api/conversations", json={"title": title[:80]})
    response.raise_for_status()
    conversation_id = response.json()["id"]
    logger.info(f"Created conversation {conversation_id}")
    return conversation_id


async def run(args) -> int:
    headers = {"X-User-Id": args.user} if args.user else None

    async with httpx.AsyncClient(base_url=args.url, headers=headers, timeout=60.0) as client:
        conversation_id = args.conversation

        if args.job:
            message_id = args.job
        else:
            image_url = await upload(client, Path(args.image))
            conversation_id = await ensure_conversation(client, conversation_id, args.prompt)

            response = await client.post("/api/process-image", json={
                "conversationId": conversation_id,
                "imageUrl": image_url,
                "prompt": args.prompt,
            })
            if response.status_code >= 400:
                logger.error(f"Request rejected ({response.status_code}): {response.text}")
                return 1
            message_id = response.json()["aiMessage"]["id"]
            logger.info(f"Processing started, polling job for message {message_id}")

        async def show_result(original: str, processed: str):
            logger.info(f"Before: {args.url}{original}" if original.startswith("/") else f"Before: {original}")
            logger.info(f"After:  {args.url}{processed}" if processed.startswith("/") else f"After:  {processed}")

        async with JobPoller(
            client,
            message_id,
            conversation_id=conversation_id,
            on_completed=show_result,
        ) as poller:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, poller.cancel)
                except NotImplementedError:
                    pass
            state = await poller.run()

    if state.cancelled:
        logger.info("Polling cancelled")
        return 130
    if not state.terminal:
        logger.error(f"Gave up after {state.attempt} polls; the job may still finish later")
        return 2

    job = state.job or {}
    if state.status == "error":
        logger.error(f"Processing failed: {job.get('errorMessage')}")
        return 1

    for item in job.get("enhancementsApplied") or []:
        logger.info(f"  - {item}")
    logger.info(f"Finished in {job.get('processingTime')}s")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Edit an image through the AI Image Editor API")
    parser.add_argument("image", nargs="?", help="Local image to upload")
    parser.add_argument("prompt", nargs="?", help="Edit instruction")
    parser.add_argument(
        "--url", "-u",
        default=os.environ.get("IMAGE_EDITOR_URL", "http://localhost:8000"),
        help="API base URL (default: $IMAGE_EDITOR_URL or http://localhost:8000)"
    )
    parser.add_argument("--conversation", "-c", help="Existing conversation id")
    parser.add_argument("--user", help="Value for the X-User-Id header")
    parser.add_argument("--job", "-j", help="Only poll the job of this assistant message id")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()
    if not args.job and not (args.image and args.prompt):
        parser.error("image and prompt are required unless --job is given")

    setup_logging("DEBUG" if args.verbose else "INFO")
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
