from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from castaway.crud import CreateData
from castaway.db import engine
from castaway.load_secrets import audit_interval_hours
from castaway.routers import challenge
from castaway.routers.challenge import challenge_service, redis

scheduler = AsyncIOScheduler()
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app):
    """Create the challenge tables and start the seed audit job.
    This function is called to start the server.
    """
    await CreateData.create_table(engine)

    # Re-check revealed seeds against their commitments
    scheduler.add_job(
        challenge_service.audit_revealed_challenges,
        "interval",
        hours=audit_interval_hours,
    )
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()
        await redis.close()
        await engine.dispose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(challenge.challenge_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
