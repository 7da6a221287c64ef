import argparse
import asyncio
import time

import httpx


async def run(base_url: str, username: str, password: str, requests: int, concurrency: int) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        login = await client.post("/auth/login", json={"username": username, "password": password})
        login.raise_for_status()
        index = (await client.get("/gifts")).json()
        open_ids = [item["id"] for item in index if item["is_open"]]
        if not open_ids:
            print("no open gifts to render")
            return

        latencies: list[float] = []

        async def hit(gift_id: str) -> None:
            start = time.perf_counter()
            res = await client.get(f"/gifts/{gift_id}")
            latencies.append((time.perf_counter() - start) * 1000.0)
            if res.status_code != 200:
                raise RuntimeError(f"status {res.status_code}")

        pending = requests
        cursor = 0
        while pending > 0:
            batch = min(concurrency, pending)
            ids = [open_ids[(cursor + i) % len(open_ids)] for i in range(batch)]
            cursor += batch
            await asyncio.gather(*[hit(gift_id) for gift_id in ids])
            pending -= batch

        lat_sorted = sorted(latencies)
        p50 = lat_sorted[len(lat_sorted) // 2]
        p95 = lat_sorted[max(0, int(len(lat_sorted) * 0.95) - 1)]
        print(f"requests={requests} concurrency={concurrency} gifts={len(open_ids)} p50_ms={p50:.2f} p95_ms={p95:.2f}")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--requests", type=int, default=50)
    parser.add_argument("--concurrency", type=int, default=10)
    args = parser.parse_args()
    asyncio.run(run(args.base_url, args.username, args.password, args.requests, args.concurrency))


if __name__ == "__main__":
    main()
