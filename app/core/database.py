from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


# Talk to the DB through async sessions without refreshes after closed conn to avoid errors in async programming
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


# The engine and session factory are owned by the app lifespan (see app.main)
async def get_db(request: Request):
    async with request.app.state.session_factory() as session:
        yield session
