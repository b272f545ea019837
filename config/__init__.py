"""Configuration helpers for the KYCtrust data layer."""

# This package collects runtime configuration that can be customised without
# touching the application logic.  ``supabase_schema`` describes every table
# exposed through the REST API.
