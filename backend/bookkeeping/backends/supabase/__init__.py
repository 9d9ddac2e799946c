"""
Supabase backend (GoTrue auth over REST, Postgres via SQLAlchemy)
"""
