"""Food scan API routes.

Identify a food from a photo, escalate on request and look up nutrition.
"""

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, File, Form, Query, UploadFile

from food_vision_api.api.dependencies import PipelineDep, ReconciliationDep, SettingsDep
from food_vision_api.core.exceptions import (
    DetectionFailedError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from food_vision_api.core.result import Failure
from food_vision_api.models.detection import DetectionResult, DetectionSource, Prediction
from food_vision_api.models.food_scan import (
    FoodAnalysis,
    NutritionLookupResponse,
    ScanErrorResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


async def read_image(image: UploadFile, max_bytes: int) -> bytes:
    """Read an uploaded image, enforcing the size limit."""
    content = await image.read()

    if not content:
        raise ValidationError("Image file is empty")
    if len(content) > max_bytes:
        raise ValidationError(
            f"Image exceeds maximum size of {max_bytes // (1024 * 1024)} MB",
            details={"size": len(content), "max_size": max_bytes},
        )
    return content


def raise_for_failure(result: Failure) -> NoReturn:
    if result.error_code == "DETECTION_FAILED":
        raise DetectionFailedError(result.message)
    raise ValidationError(result.message, details={"error_code": result.error_code})


@router.post(
    "/scan",
    response_model=FoodAnalysis,
    responses={422: {"model": ScanErrorResponse, "description": "Detection failed"}},
    summary="Identify food in a photo and attach nutrition",
)
async def scan_food(
    image: Annotated[UploadFile, File(description="Food photo (JPEG or PNG)")],
    pipeline: PipelineDep,
    settings: SettingsDep,
    image_ref: Annotated[str | None, Form(description="Opaque reference to the stored image")] = None,
) -> FoodAnalysis:
    """
    Analyze a food photo.

    The on-device classifier runs first. Confident results are returned
    directly; moderate ones come back with ``escalation_suggested``; low
    confidence or no result escalates to the remote analyzer.
    """
    content = await read_image(image, settings.max_image_bytes)

    result = await pipeline.analyze(content, image_ref=image_ref)
    if isinstance(result, Failure):
        raise_for_failure(result)

    analysis = result.data
    logger.info(
        f"Scan complete: '{analysis.food.name}' via {analysis.detection.source.value} "
        f"(estimate={analysis.food.is_estimate})"
    )
    return analysis


@router.post(
    "/scan/escalate",
    response_model=FoodAnalysis,
    responses={422: {"model": ScanErrorResponse, "description": "Detection failed"}},
    summary="Analyze a photo with the remote analyzer on request",
)
async def escalate_scan(
    image: Annotated[UploadFile, File(description="Food photo (JPEG or PNG)")],
    pipeline: PipelineDep,
    settings: SettingsDep,
    image_ref: Annotated[str | None, Form()] = None,
    local_label: Annotated[str | None, Form(description="Label the local model suggested")] = None,
    local_confidence: Annotated[float | None, Form(ge=0.0, le=1.0)] = None,
) -> FoodAnalysis:
    """Escalate after a moderate-confidence suggestion."""
    content = await read_image(image, settings.max_image_bytes)

    local_result = None
    if local_label:
        local_result = DetectionResult(
            predictions=[Prediction(label=local_label, confidence=local_confidence or 0.0)],
            source=DetectionSource.LOCAL,
        )

    result = await pipeline.escalate(content, local_result=local_result, image_ref=image_ref)
    if isinstance(result, Failure):
        raise_for_failure(result)
    return result.data


@router.get(
    "/nutrition",
    response_model=NutritionLookupResponse,
    summary="Look up nutrition for a food name",
)
async def lookup_nutrition(
    pipeline: PipelineDep,
    name: Annotated[str, Query(min_length=1, max_length=200, description="Food name")],
    image_ref: Annotated[str | None, Query()] = None,
) -> NutritionLookupResponse:
    """
    Resolve a food name (e.g. an alternative the user picked).

    Falls back to a flagged generic estimate when nothing usable is found.
    """
    food = await pipeline.resolve_alternative(name.strip(), image_ref=image_ref)
    return NutritionLookupResponse(query=name, food=food)


@router.get(
    "/nutrition/{food_id}",
    response_model=NutritionLookupResponse,
    summary="Get nutrition for a nutrition database record",
)
async def get_nutrition_by_id(
    food_id: str,
    reconciliation: ReconciliationDep,
) -> NutritionLookupResponse:
    result = await reconciliation.resolve_by_id(food_id)

    if isinstance(result, Failure):
        if result.error_code == "NOT_FOUND":
            raise NotFoundError("Food", food_id)
        if result.error_code == "LOOKUP_UNAVAILABLE":
            raise ServiceUnavailableError(result.message)
        raise ValidationError(result.message, details={"error_code": result.error_code})

    return NutritionLookupResponse(query=food_id, food=result.data)
