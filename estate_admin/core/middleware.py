# ================================
# MIDDLEWARE (core/middleware.py)
# ================================

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from estate_admin.core.database import SessionLocal
import time
import uuid
import logging

logger = logging.getLogger(__name__)

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware für Request-ID, Database Session und Timing"""
    
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        
        # Request ID für Logging
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        
        # Database Session
        db = SessionLocal()
        request.state.db = db
        
        try:
            response = await call_next(request)
            
            # Response Headers
            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            response.headers["X-Request-ID"] = request_id
            
            return response
            
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware für Request/Response Logging"""
    
    async def dispatch(self, request: Request, call_next):
        # Pre-request logging
        self._log_request(request)
        
        response = await call_next(request)
        
        # Post-request logging
        self._log_response(request, response)
        
        return response
    
    def _log_request(self, request: Request):
        """Loggt eingehende Requests"""
        logger.info(
            f"Request: {request.method} {request.url.path}",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
                "query_params": str(request.query_params),
                "user_agent": request.headers.get("User-Agent"),
                "ip_address": request.client.host if request.client else None
            }
        )
    
    def _log_response(self, request: Request, response: Response):
        """Loggt ausgehende Responses"""
        logger.info(
            f"Response: {response.status_code} for {request.method} {request.url.path}",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "status_code": response.status_code,
                "process_time": response.headers.get("X-Process-Time")
            }
        )

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware für Security Headers"""
    
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        
        # Security Headers hinzufügen
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        
        # HSTS für HTTPS
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        
        return response
