"""Backing-store access: Supabase repositories, public REST fallback, Redis."""
