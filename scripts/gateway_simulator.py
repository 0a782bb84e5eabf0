"""
Local SMS gateway simulator

Polls the outgoing queue, prints each message and acknowledges it, the
way a phone-based gateway would. Use --fail-every N to exercise retries.

Run:
    python scripts/gateway_simulator.py --url http://localhost:8000
"""

import argparse
import asyncio
import os
import sys
import logging

import httpx
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def poll_once(client: httpx.AsyncClient, prefix: str, limit: int, fail_every: int, counter: list) -> int:
    response = await client.get(f"{prefix}/gateway/outgoing", params={"limit": limit})
    response.raise_for_status()
    messages = response.json()["messages"]

    for message in messages:
        counter[0] += 1
        print(f"[{message['priority']:>6}] -> {message['to']}: {message['body']}")

        if fail_every and counter[0] % fail_every == 0:
            ack = await client.post(
                f"{prefix}/gateway/failed",
                json={"messageId": message["id"], "error": "simulated carrier error"},
            )
        else:
            ack = await client.post(f"{prefix}/gateway/sent", json={"messageId": message["id"]})

        if ack.status_code != 200:
            logger.warning(f"Ack for {message['id']} returned {ack.status_code}: {ack.text}")

    return len(messages)


async def main():
    parser = argparse.ArgumentParser(description="Poll and acknowledge outbound SMS")
    parser.add_argument("--url", default="http://localhost:8000")
    parser.add_argument("--prefix", default=os.getenv("API_PREFIX", "/api/v1"))
    parser.add_argument("--interval", type=float, default=2.0, help="Seconds between polls")
    parser.add_argument("--limit", type=int, default=10)
    parser.add_argument("--fail-every", type=int, default=0, help="Fail every Nth message")
    parser.add_argument("--once", action="store_true", help="Poll a single time and exit")
    args = parser.parse_args()

    headers = {}
    api_key = os.getenv("GATEWAY_API_KEY")
    if api_key:
        headers["X-API-Key"] = api_key

    counter = [0]
    async with httpx.AsyncClient(base_url=args.url, headers=headers, timeout=10.0) as client:
        while True:
            try:
                await poll_once(client, args.prefix, args.limit, args.fail_every, counter)
            except httpx.HTTPError as e:
                logger.error(f"Poll failed: {e}")
                if args.once:
                    sys.exit(1)

            if args.once:
                break
            await asyncio.sleep(args.interval)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
