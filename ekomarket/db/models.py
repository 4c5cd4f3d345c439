"""Database base for DDD architecture"""

from sqlalchemy.orm import declarative_base

# ORM model classes live in infrastructure/orm/
Base = declarative_base()
