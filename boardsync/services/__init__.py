# Services package.
#
# Each module holds one consistency maintainer; all of them receive their
# store adapters at construction:
#
#   counters     : signed deltas on meta and embedded counters
#   fields       : add-only merge of board category/tag sets
#   cascade      : dependent records and blobs of deleted boards/articles
#   temp_files   : staging, promotion and age-based sweep of uploads
#   search_sync  : article projection into the search index
#   pipeline     : ordered steps with critical/advisory failure policy
#   lifecycle    : maps each lifecycle event to its pipeline
