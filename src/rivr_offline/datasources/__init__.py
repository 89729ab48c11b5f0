"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs and constants
    └── {feature}.py      # Fetch + parse functions (one per endpoint/concept)

Adding a new datasource
-----------------------
1. Create ``datasources/{name}/`` with files above.
   See ``nwm/`` for a JSON API behind ``ApiClient``, ``mapbox/`` for raw
   bytes fetched with a ``requests.Session``.

2. Split fetching from parsing so the parser can run on cached payloads::

       def fetch_something(api: ApiClient, key: str) -> dict[str, Any]:
           return api.get(something_url(key))

       def parse_something(payload: dict[str, Any]) -> Something: ...

3. Re-export public API in ``__init__.py`` with ``__all__``.

4. Wire it into a repository (see ``repositories/forecast.py``) so cached
   copies land in ``OfflineStorageRepository`` and are used when offline.

5. Add tests in ``tests/test_{name}.py``.
"""
