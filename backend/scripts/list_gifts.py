import argparse
import asyncio

from gift_reveal.core.clock import SystemClock
from gift_reveal.core.config import settings
from gift_reveal.core.schedule import gift_week, is_unlocked
from gift_reveal.db.session import async_session_factory, ensure_schema_ready
from gift_reveal.services.gift_store import GiftStore


async def run(order_by: str) -> None:
    await ensure_schema_ready()
    now = SystemClock().now()
    async with async_session_factory() as session:
        gifts = await GiftStore(session).list_all(order_by)

    if not gifts:
        print("no gifts")
        return

    tz = settings.reveal_timezone
    for gift in gifts:
        status = "open" if is_unlocked(gift.open_date, now) else "waiting"
        print(
            f"#{gift.number:<3} {gift.id} {gift.open_date.astimezone(tz):%Y-%m-%d %H:%M} "
            f"week={gift_week(gift.open_date, settings.word_start_date)} {status}"
            f"{' secret' if gift.is_secret else ''} title={gift.title or '-'} "
            f"content={gift.content_url or gift.content_path or '-'}"
        )
    opened = sum(1 for g in gifts if is_unlocked(g.open_date, now))
    print(f"total={len(gifts)} open={opened} secret={sum(1 for g in gifts if g.is_secret)}")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--order-by", choices=["number", "open_date", "-open_date"], default="number")
    args = parser.parse_args()
    asyncio.run(run(args.order_by))


if __name__ == "__main__":
    main()
