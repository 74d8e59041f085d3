"""
End-to-end smoke check against a running gateway.

    BASE_URL=http://localhost:8000 API_KEY=... python scripts/verify_flow.py
"""
import asyncio
import logging
import os
import sys

import httpx

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
API_KEY = os.getenv("API_KEY", "")


async def check_health(client: httpx.AsyncClient) -> bool:
    resp = await client.get(f"{BASE_URL}/health")
    if resp.status_code != 200:
        logger.error(f"Health check failed: {resp.status_code} {resp.text}")
        return False
    logger.info(f"Health: {resp.json()}")
    return True


async def check_translate(client: httpx.AsyncClient, headers: dict) -> bool:
    payload = {"texts": ["Hello", "How are you?"], "target": "es", "source": "auto"}

    first = await client.post(f"{BASE_URL}/api/translate", json=payload, headers=headers)
    if first.status_code != 200:
        logger.error(f"Translate failed: {first.status_code} {first.text}")
        return False
    logger.info(f"Translations: {first.json()['translations']}")
    logger.info(f"Rate limit remaining: {first.headers.get('X-RateLimit-Remaining')}")

    # Second call should be served from translation memory
    second = await client.post(f"{BASE_URL}/api/translate", json=payload, headers=headers)
    if second.json() != first.json():
        logger.error("Repeated request returned different translations")
        return False
    return True


async def check_unauthorized(client: httpx.AsyncClient) -> bool:
    resp = await client.post(f"{BASE_URL}/api/translate", json={"texts": ["Hi"], "target": "fr"})
    if resp.status_code != 401:
        logger.error(f"Expected 401 without credentials, got {resp.status_code}")
        return False
    return True


async def check_detect_and_languages(client: httpx.AsyncClient, headers: dict) -> bool:
    resp = await client.post(f"{BASE_URL}/api/detect", json={"text": "Bonjour tout le monde"}, headers=headers)
    if resp.status_code != 200:
        logger.error(f"Detect failed: {resp.status_code} {resp.text}")
        return False
    logger.info(f"Detected: {resp.json()}")

    resp = await client.get(f"{BASE_URL}/api/languages", headers=headers)
    if resp.status_code != 200:
        logger.error(f"Languages failed: {resp.status_code} {resp.text}")
        return False
    logger.info(f"{len(resp.json())} languages available")
    return True


async def main() -> int:
    if not API_KEY:
        logger.error("Set API_KEY to a key from STATIC_API_KEYS or scripts/create_api_key.py")
        return 1

    headers = {"Authorization": f"Bearer {API_KEY}"}
    async with httpx.AsyncClient(timeout=30.0) as client:
        checks = [
            await check_health(client),
            await check_unauthorized(client),
            await check_translate(client, headers),
            await check_detect_and_languages(client, headers),
        ]

    if all(checks):
        logger.info("✅ All checks passed")
        return 0
    logger.error("❌ Some checks failed")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
