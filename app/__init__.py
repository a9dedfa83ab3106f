"""Agenda core API - availability, booking and payment reconciliation"""
