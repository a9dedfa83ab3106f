"""
Mercado Pago Integration Models
Database model for the stored gateway credentials
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text

from .database import Base


class MercadoPagoIntegration(Base):
    """Store Mercado Pago access token and account information"""

    __tablename__ = "mercadopago_integrations"

    user_id = Column(String, primary_key=True, index=True)  # Mercado Pago account user id
    access_token = Column(Text, nullable=False)  # Encrypted
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
