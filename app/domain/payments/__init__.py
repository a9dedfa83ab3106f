"""Payments domain - Mercado Pago webhook authentication, resolution and reconciliation"""
