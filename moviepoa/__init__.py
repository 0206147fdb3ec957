"""Moviepoa: personal top 100 movie rankings.

Layout:
    config/      environment accessors
    db/          engine, models and repositories (rank allocator, store)
    services/    validation, accounts, TMDB integration
    routes/      Flask blueprints
    startup/     application factory
"""

__all__ = [
]
