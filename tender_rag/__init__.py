"""Tender question answering: retrieval-augmented generation over published tenders."""
