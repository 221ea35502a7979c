# Supabase tables: post_likes, comments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

post_likes:
- id: uuid (primary key)
- post_id: uuid (foreign key to posts.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (post_id, user_id)

comments:
- id: uuid (primary key)
- post_id: uuid (foreign key to posts.id, not null)
- author_id: uuid (foreign key to profiles.id, not null)
- content: text (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
