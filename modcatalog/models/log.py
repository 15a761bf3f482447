from sqlalchemy import Column, Integer, String, Text, DateTime, Index, func

from .base import Base

class ApiLogDB(Base):
    __tablename__ = 'api_logs'
    __table_args__ = (
        Index('idx_api_logs_created_method', 'created_at', 'method'),
        Index('idx_api_logs_created_status', 'created_at', 'status_code'),
        Index('idx_api_logs_user_created', 'user_id', 'created_at'),
        Index('idx_api_logs_admin_created', 'admin_id', 'created_at'),
        Index('idx_api_logs_ip_created', 'ip', 'created_at'),
        Index('idx_api_logs_path_created', 'path', 'created_at'),
        Index('idx_api_logs_cleanup', 'created_at'),
    )

    id = Column(Integer, primary_key=True)
    method = Column(String(10), nullable=False)
    path = Column(String(500), nullable=False)
    ip = Column(String(100))
    user_agent = Column(String(500))
    status_code = Column(Integer)
    response_time = Column(Integer)  # milliseconds
    user_id = Column(Integer)
    username = Column(String(50))
    admin_id = Column(Integer)
    admin_name = Column(String(50))
    request_body = Column(Text)
    error = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
