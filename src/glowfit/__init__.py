"""
Glowfit - onboarding and weekly plan generation.

Packages:
- onboarding: step-by-step profile collection (separate top-level package)
- glowfit.plans: plan generation orchestration, repair/parsing, status polling
- glowfit.db: Supabase-backed profile and plan stores
"""

__version__ = "1.0.0"
