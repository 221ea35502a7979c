# Supabase table: folders
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

folders:
- id: uuid (primary key)
- name: text (not null)
- user_id: uuid (foreign key to profiles.id, not null)
- parent_folder_id: uuid (foreign key to folders.id, nullable)
- created_at: timestamp (default: now())

Folders form a forest per user. posts.folder_id points at one folder
owned by the note's author.
"""
