from __future__ import annotations

import asyncio


async def event_dispatch_loop(
    *,
    router,
    queue: asyncio.Queue,
) -> None:
    # One task per event; the loop itself never waits on a provider call.
    while True:
        event = await queue.get()
        try:
            router.submit(event)
        except Exception as e:
            print(f"[Router] dispatch error: {e}")
        finally:
            queue.task_done()
