"""Orchestration services for onboarding, purchase and minting."""
