"""
Mom's Yums Backend - Application Package
==========================================

What: Backend of Mom's Yums: reads photographed handwritten recipe cards
      into editable recipes and stores, searches and shares them.
Who:  Imported by uvicorn (app.main:app), Alembic and pytest.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (extraction, recipes)     │  ← vision backends, parser, rules
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Supabase Postgres, async sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
