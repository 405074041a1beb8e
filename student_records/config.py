# config.py
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    PROJECT_NAME = "Student Records API"

    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB = os.getenv("MONGODB_DB", "student_records")
    STUDENTS_COLLECTION = os.getenv("STUDENTS_COLLECTION", "students")

    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    HOST = os.getenv("HOST", "127.0.0.1")
    PORT = int(os.getenv("PORT", 8000))
    RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
