import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST", "localhost")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME")
db_backend = os.getenv("DB_BACKEND", "postgres")
sqlite_path = os.getenv("SQLITE_PATH")

redis_host = os.getenv("REDIS_HOST", "redis")
redis_port = int(os.getenv("REDIS_PORT", "6379"))

# Game balance
roll_sides = int(os.getenv("ROLL_SIDES", "20"))
default_top_k = int(os.getenv("DEFAULT_TOP_K", "3"))
audit_interval_hours = int(os.getenv("AUDIT_INTERVAL_HOURS", "24"))

if __name__ == "__main__":
    print(user, host, port, db_name, db_backend, redis_host, redis_port, roll_sides)
