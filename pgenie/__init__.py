"""pgenie -- scaffold Drizzle ORM + Neon projects with AI-generated schemas.

Quick usage::

    pgenie init       # provision Neon, install Drizzle, generate schema + seed
    pgenie generate   # describe a change, review the diff, apply it
"""

__version__ = "0.1.0"
