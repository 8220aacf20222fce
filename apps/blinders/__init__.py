"""Blinders: role-gated realtime group chat."""
