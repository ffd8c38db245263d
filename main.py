import asyncio
import sys

from config.logger import logger
from core.stack_session import StackSession
from services.deals_api import CartSmartAPI

USAGE = (
    "Usage:\n"
    "  python main.py list <product_id>\n"
    "  python main.py stack <product_id> \"<description>\" <deal_id> <deal_id> [...]"
)


def format_deal(deal) -> str:
    line = f"#{deal.deal_id:<6} {deal.type_label:<9} ${deal.price:>9.2f}"
    if deal.discount_percent > 0:
        line += f"  {deal.discount_percent:g}% off"
    if deal.coupon_code:
        line += f"  [{deal.coupon_code}]"
    line += f"  {deal.store_url or 'No store'}"
    return line


async def list_candidates(product_id: int):
    async with CartSmartAPI() as api:
        session = StackSession(api, product_id)
        await session.open()
        while await session.load_more():
            pass

        if not session.pager.deals:
            print("No deals to stack for this product.")
            return
        for deal in session.pager.deals:
            print(format_deal(deal))
        print(f"\n{len(session.pager.deals)} deals loaded")


async def build_stack(product_id: int, description: str, deal_ids: list) -> bool:
    async with CartSmartAPI() as api:
        session = StackSession(api, product_id)
        await session.open()

        # Steps may live beyond the first page
        while any(session.pager.find(i) is None for i in deal_ids) and await session.load_more():
            pass

        for deal_id in deal_ids:
            if session.pager.find(deal_id) is None:
                logger.error(f"❌ Deal {deal_id} is not a stackable deal of product {product_id}")
                return False
            session.select(deal_id)

        session.set_description(description)
        print("Steps:")
        for idx, deal in enumerate(session.state.selected, start=1):
            print(f"  {idx}. {format_deal(deal)}")
        print(f"Price: ${session.fields.price or 0:.2f}  Discount: {session.fields.discount_percent or 0:.2f}%")

        result = await session.submit()
        for message in session.messages:
            print(f"⚠️ {message}")
        return result is not None


async def main():
    args = sys.argv[1:]
    try:
        numbers = [int(a) for a in args[1:2] + args[3:]]
    except ValueError:
        numbers = None

    if numbers and len(args) == 2 and args[0] == "list":
        await list_candidates(numbers[0])
        return 0
    if numbers and len(args) >= 4 and args[0] == "stack":
        ok = await build_stack(numbers[0], args[2], numbers[1:])
        return 0 if ok else 1
    print(USAGE)
    return 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
