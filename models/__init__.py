"""Persistence layer: ORM models and the process-wide DBStorage instance.

The storage is bound to a database by api.create_app() via storage.reload().
"""
from models.db_storage import DBStorage

storage = DBStorage()
