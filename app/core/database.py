from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from app.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

# Sessions keep loaded objects usable after commit, the chat pipeline commits between stages
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


# One session per request, shared by every stage of the chat pipeline
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


# Every model registered on Base is created by the migrations and the test fixtures
class Base(DeclarativeBase):
    pass
