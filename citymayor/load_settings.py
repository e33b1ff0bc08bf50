import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST")
port = os.getenv("DB_PORT")
db_name = os.getenv("DB_NAME")
pepper_data = os.getenv("PEPPER_DATA", "")

# DATABASE_URL wins over the DB_* variables, e.g. "sqlite+aiosqlite:///./citymayor.sqlite3"
database_url = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}",
)

redis_host = os.getenv("REDIS_HOST", "redis")
redis_port = int(os.getenv("REDIS_PORT", "6379"))

default_gold = int(os.getenv("DEFAULT_GOLD", "1000"))
default_land_size_x = int(os.getenv("DEFAULT_LAND_SIZE_X", "10"))
default_land_size_y = int(os.getenv("DEFAULT_LAND_SIZE_Y", "10"))
session_ttl_hours = int(os.getenv("SESSION_TTL_HOURS", "24"))

if __name__ == "__main__":
    print(user, host, port, db_name, redis_host, redis_port)
