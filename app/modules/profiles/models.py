# Supabase tables: profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users
- full_name: text (nullable)
- username: text (unique, nullable) - lowercase, 3-20 chars, [a-z0-9_]
- avatar_url: text (nullable)
- bio: text (nullable)
- user_role: text (not null, default: 'user') - values: user, group_admin, universal_admin
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Rows are inserted by a sign-up trigger in Supabase, never by this service,
and are never deleted here.
"""
