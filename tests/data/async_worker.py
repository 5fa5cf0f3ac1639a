import asyncio


async def main(value):
    await asyncio.sleep(0)
    return value * 2
