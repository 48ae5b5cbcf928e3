"""
Installment Tables - payment-plan engine for course installment tables

A FastAPI-based service that derives per-installment values, guards the
discount ceiling, encodes plans into the bracket-indexed form format and
persists them through the plans API.
"""

__version__ = "0.1.0"
