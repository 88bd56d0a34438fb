"""
Decision request construction.

Turns the pipeline being saved, and in delta mode its currently stored
version, into the document the policy service evaluates.
"""

import logging
from typing import Optional

from pipegate.core.exceptions import PipelineLookupError, SerializationError
from pipegate.core.models import DecisionRequest, Pipeline
from pipegate.store import PipelineLookup

logger = logging.getLogger(__name__)


def build_request(
    pipeline: Pipeline,
    delta_enabled: bool,
    lookup: Optional[PipelineLookup] = None,
) -> DecisionRequest:
    """
    Build the decision request for `pipeline`.

    A first-time save (empty stage list) never takes the delta path, since
    there is nothing stored to compare against.

    Raises:
        SerializationError: pipeline has no application field, or its
            application or name is not a string.
        PipelineLookupError: delta mode, and no stored pipeline carries this
            name or the store could not be read.
    """
    if pipeline.application is None or pipeline.application == "":
        raise SerializationError("pipeline has no application field")
    if not isinstance(pipeline.application, str):
        raise SerializationError(
            f"pipeline application must be a string, got {pipeline.application!r}"
        )
    if pipeline.name is not None and not isinstance(pipeline.name, str):
        raise SerializationError(f"pipeline name must be a string, got {pipeline.name!r}")

    new_document = pipeline.to_dict()

    if delta_enabled and not pipeline.is_initial_save:
        current = find_current(pipeline, lookup)
        logger.debug(
            "Delta verification for %s/%s against stored version",
            pipeline.application, pipeline.name,
        )
        return DecisionRequest(new=new_document, current=current.to_dict())

    return DecisionRequest(new=new_document)


def find_current(pipeline: Pipeline, lookup: Optional[PipelineLookup]) -> Pipeline:
    """Stored pipeline in the same application whose name matches case-insensitively."""
    if lookup is None:
        raise PipelineLookupError(
            f"there is no pipeline with name {pipeline.name}",
            details={"reason": "no pipeline store configured"},
        )

    # Any store failure blocks the save as a lookup rejection
    try:
        candidates = list(lookup.get_pipelines_by_application(
            pipeline.application, force_refresh=True
        ))
    except Exception as exc:
        logger.error("Pipeline lookup failed for application %s: %s", pipeline.application, exc)
        raise PipelineLookupError(
            f"failed to look up pipelines for application {pipeline.application}: {exc}"
        ) from exc

    for candidate in candidates:
        if candidate.matches_name(pipeline.name):
            return candidate

    raise PipelineLookupError(f"there is no pipeline with name {pipeline.name}")
