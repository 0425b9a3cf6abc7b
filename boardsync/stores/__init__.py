# Store adapters.
#
# One module per backing store, each exposing typed operations and no
# business logic:
#
#   primary : SQLAlchemy async document store (accounts, counters, boards,
#             articles, comments, temp-file records)
#   mirror  : Redis copy of account records
#   blobs   : object storage (single and prefix deletes)
#   search  : hosted full-text search index
#
# Adapters are created once at startup and injected into the services, so
# tests can swap any of them for an in-memory fake.
