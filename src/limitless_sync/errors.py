# -*- coding: utf-8 -*-
from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    RATE_LIMITED     = "rate_limited"
    UNAUTHORIZED     = "unauthorized"
    NOT_FOUND        = "not_found"
    INVALID_RESPONSE = "invalid_response"
    HTTP             = "http"
    NETWORK          = "network"


class ApiError(Exception):
    """A failed API call, classified once at the request boundary."""

    def __init__(self, message: str, kind: ErrorKind=ErrorKind.HTTP, status: Optional[int]=None):
        super().__init__(message)
        self.kind = kind
        self.status = status
