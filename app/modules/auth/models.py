# Supabase Auth
# Accounts live in Supabase's auth.users table; UniNote keeps no credentials.

"""
Supabase Auth provides:
- auth.sign_up() - Register new users (user_metadata carries full_name and username)
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.refresh_session() - Exchange a refresh token for a new access token
- auth.admin.sign_out(jwt) - Revoke the session behind one access token

A database trigger owned by the Supabase project creates the matching
public.profiles row (user_role defaults to 'user') on sign-up.
"""
