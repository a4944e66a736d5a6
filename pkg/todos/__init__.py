# Todo system: per-user task lists kept in a Google Sheet, driven from Telegram
#
# Components:
#   schema.py     - Data model (Todo, PendingAction, ListMode) and row mapping
#   sheets.py     - Google Sheets range client (the row store)
#   store.py      - Todo CRUD on top of the row store
#   session.py    - Per-user pending action tracking
#   render.py     - Telegram text + button layouts for list views
#   dispatcher.py - Command / button / free-text state machine
