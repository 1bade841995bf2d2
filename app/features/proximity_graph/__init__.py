"""
Proximity graph feature package.

Contact-token graph, audience resolution, overlap matching, notification
fan-out and ephemeral cleanup, kept together as one vertical slice:

    domain/      dataclasses, enums and the error taxonomy
    repository/  Postgres access
    pipeline/    graph build, resolver, matcher, fan-out, reaper, write hooks
    services/    interactive entry points (short-range, contact import, writes)
    jobs/        scheduled graph build and reaper
    api/         FastAPI router

Nothing is re-exported here; the auth layer imports the domain errors, and
an eager router import would make that circular.
"""
