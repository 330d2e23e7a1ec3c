"""Specials scheduling and broadcast injection for the radio station."""
