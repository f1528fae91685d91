from databases import Database

from arena.config import config

database = Database(str(config.pg_dsn))
