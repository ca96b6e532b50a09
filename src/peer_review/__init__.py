"""Peer review service: student teammate ratings within teacher-managed groups."""
