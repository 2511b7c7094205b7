"""Имена документных коллекций (schema-in-code).

У документного хранилища нет DDL: коллекция появляется при первой записи.
Эти константы - единственный источник истины для имён коллекций.
"""

COLLECTION_USERS = "users"
COLLECTION_PARTNER_REQUESTS = "partner_requests"
COLLECTION_PENDING_SELLERS = "pending_sellers"
COLLECTION_AUDIT_LOG = "audit_log"
