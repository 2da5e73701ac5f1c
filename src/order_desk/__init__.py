"""
Order Desk - query and mutation orchestration for order list views

This package sits between an order management UI and the orders REST API.
It turns user input into backend queries and keeps the visible results
consistent while requests race each other:

- Filter, search and pagination state composed into a single query
- Debounced search so bursts of keystrokes send one request
- Sequence tokens so a stale response never overwrites a newer one
- One error model for every backend failure shape, with deduplicated
  notifications

Key Components:
    - filters: Immutable filter state and query derivation
    - debounce: Cancellable debounce timer
    - sequencing: Request sequence tokens
    - query_controller: Per-view orchestration of fetches and assignment
    - error_normalizer: Failure normalization, routing and toast dedupe
    - notifications: Process-wide notification channel
    - order_service: httpx client for the orders backend
    - view_manager: Registry of live views
    - main: FastAPI application exposing views over HTTP
    - configuration: Config loading and merging logic

Usage:
    Run the API server with:
        uvicorn order_desk.main:app --reload --host 0.0.0.0 --port 8000

    Point it at the orders backend with ORDER_DESK_API_URL (a .env file
    works too).
"""
