"""Council Area Profiles package.

Root of the council area profile pipeline, which validates the council
area profiles workbook, applies its ``updates`` sheets, and renders one
HTML profile per Scottish council area using a pool of parallel workers.

Package Structure
-----------------
- `pipeline/dataset/`:
    Workbook loading and the deep merge of the ``updates`` sublist.
- `pipeline/validation/`:
    Declarative expectation rules and the schema conformance checker.
- `pipeline/profiles/`:
    Worker pool, fan-out stage runner and gates, artifact store, content
    builder, renderer, and the orchestrator sequencing them.
- `config.py`: All configuration constants (paths, area list, limits), as UPPER_SNAKE_CASE.
- `exceptions.py`: Project-specific exception classes.

For typical use, run ``python -m src.program_create_all_profiles``.

Examples
--------
>>> import src
>>> # See program_create_all_profiles for the entrypoint.
"""
