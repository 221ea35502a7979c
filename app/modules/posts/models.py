# Supabase tables: posts (notes); storage bucket: attachments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

posts:
- id: uuid (primary key)
- title: text (not null)
- content: text (not null)
- author_id: uuid (foreign key to profiles.id, not null)
- post_type: text (not null) - values: public, group
- group_id: uuid (foreign key to groups.id, required iff post_type = 'group')
- approval_status: text (not null, default: 'pending') - values: pending, approved, rejected
- approved_by: uuid (nullable) - the admin who approved or rejected
- approved_at: timestamp (nullable)
- rejection_reason: text (nullable) - set on reject, cleared on edit
- folder_id: uuid (foreign key to folders.id, nullable) - must belong to the author
- tags: text[] (nullable)
- attachments: jsonb (nullable) - list of {url, name, type, size}
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Approval lifecycle:
    pending -> approved      (admin approve; terminal)
    pending -> rejected      (admin reject with a reason)
    rejected -> pending      (author edits the note)

Storage bucket 'attachments':
- post-attachments/<user_id>/<millis>-<random>.<ext>, public URLs
"""
