"""
CRD conversion webhook route.

The API server posts an apiextensions.k8s.io/v1 ConversionReview whenever a
client reads or writes MiniCloneSets at a version other than the stored one.
Every object is converted through the hub; if any object fails, the whole
review fails (the API server does not accept partial responses).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ..conversion import Scheme
from ..errors import ConversionError
from ..metrics import CONVERSIONS
from ..models import ConversionResponse, ConversionResult, ConversionReview

logger = logging.getLogger("conversion")

router = APIRouter(tags=["conversion"])


def get_scheme(request: Request) -> Scheme:
    return request.app.state.scheme


@router.post("/convert", response_model=ConversionReview, response_model_exclude_none=True)
def convert(review: ConversionReview, scheme: Scheme = Depends(get_scheme)):
    """Convert every object in the review to ``request.desiredAPIVersion``."""
    req = review.request
    if req is None:
        raise HTTPException(status_code=400, detail="ConversionReview has no request")

    try:
        converted = [scheme.convert(obj, req.desiredAPIVersion) for obj in req.objects]
    except ConversionError as e:
        CONVERSIONS.labels(desired_version=req.desiredAPIVersion, result="failed").inc()
        logger.warning(f"Conversion {req.uid} to {req.desiredAPIVersion} failed: {e}")
        response = ConversionResponse(
            uid=req.uid,
            result=ConversionResult(status="Failed", message=str(e)),
        )
    else:
        CONVERSIONS.labels(desired_version=req.desiredAPIVersion, result="success").inc(len(converted))
        response = ConversionResponse(uid=req.uid, convertedObjects=converted)

    return ConversionReview(apiVersion=review.apiVersion, kind=review.kind, response=response)
