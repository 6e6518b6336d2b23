"""Protean Engine runner for the commerce domain.

In production, events are processed asynchronously: the Engine delivers order
events to the OrderSummary projector.

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import asyncio

from protean.server.engine import Engine


def _initialized_domain():
    from commerce.domain import commerce
    from commerce.utils.logging import configure_logging

    configure_logging()
    commerce.init()
    return commerce


async def run():
    engine = Engine(_initialized_domain())
    await engine.run()


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
