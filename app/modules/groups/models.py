# Supabase tables: groups, group_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- avatar_url: text (nullable)
- created_by: uuid (foreign key to profiles.id, not null) - creator
- member_count: integer (not null, default: 0) - cached count of approved
  memberships, recomputed from group_members after every membership change
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

group_members:
- id: uuid (primary key) - the membership id used for approve/reject
- group_id: uuid (foreign key to groups.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- is_admin: boolean (not null, default: false)
- status: text (not null, default: 'pending') - values: pending, approved
- joined_at: timestamp (default: now())
- at most one row per (group_id, user_id); rejected requests are deleted
"""
