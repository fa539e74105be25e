"""edb: mirror an eXist-db collection to disk and back, with rolling backups"""

__version__ = "0.1.0"
