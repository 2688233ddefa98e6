"""Builders that turn CRD specs into API payloads."""
