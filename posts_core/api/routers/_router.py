"""
Shared router of all path operations, filtered per API version later
"""

from fastapi import APIRouter


router = APIRouter()
