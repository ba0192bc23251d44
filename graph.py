"""
LangGraph workflow for translating localization files.

The job is split into batches per file; batches are translated in waves of
independent orchestrators, each with its own streaming attempt loop.
"""

import asyncio
import logging
import time
from typing import Any, Dict
from datetime import datetime

from langgraph.graph import StateGraph, END

from src.ai_translator.workflows.translation_state import (
    TranslationWorkflowState,
    TranslationJobRequest,
)
from src.ai_translator.workflows.batching import (
    effective_batch_size,
    plan_batches,
    resolve_model_name,
    translate_batch,
)
from src.ai_translator.models.records import TokenUsage
from src.ai_translator.config import get_settings
from src.ai_translator.utils.helpers import create_processing_metadata

logger = logging.getLogger("ai_translator.graph")


def initialize_workflow(state: TranslationWorkflowState) -> Dict[str, Any]:
    """
    Initialize the translation workflow state.

    This node prepares the workflow by:
    - Splitting every file into batches
    - Initializing counters and metadata
    """
    request = state["original_request"]
    batches = plan_batches(request)
    logger.info(
        "Planned %d batch(es) for %d string(s) in %d file(s)",
        len(batches), request.total_strings, len(request.files),
    )

    return {
        "batches": batches,
        "current_batch_index": 0,
        "batch_results": [],
        "final_results": [],
        "total_strings": request.total_strings,
        "processed_strings": 0,
        "workflow_start_time": time.time(),
        "workflow_status": "running",
        "errors": [],
        "model_name": resolve_model_name(request),
        "model_params": request.model_params,
        "metadata": {
            "initialized_at": datetime.now().isoformat(),
            "total_batches": len(batches),
        },
    }


async def process_batch(state: TranslationWorkflowState) -> Dict[str, Any]:
    """
    Translate the next wave of batches concurrently.

    Each batch runs with its own orchestrator. A batch that fails
    verification or whose transport fails is recorded and the workflow moves
    on to the remaining batches.
    """
    current_index = state["current_batch_index"]
    batches = state["batches"]
    if current_index >= len(batches):
        return {"workflow_status": "completed"}

    wave = batches[current_index:current_index + get_settings().max_concurrent_batches]
    request = state["original_request"]
    results = await asyncio.gather(*[
        translate_batch(
            batch,
            state["model_name"],
            state["model_params"],
            max_attempts=request.max_attempts,
        )
        for batch in wave
    ])

    batch_results = list(state["batch_results"])
    final_results = list(state["final_results"])
    errors = list(state["errors"])
    processed = state["processed_strings"]

    for batch, result in zip(wave, results):
        batch_results.append(result)
        processed += len(batch.items)
        if result.success:
            final_results.extend(result.results)
        else:
            errors.append({
                "batch_id": result.batch_id,
                "error": result.error_message,
                "missing_keys": result.missing_keys,
                "timestamp": datetime.now().isoformat(),
            })

    return {
        "batch_results": batch_results,
        "final_results": final_results,
        "errors": errors,
        "processed_strings": processed,
        "current_batch_index": current_index + len(wave),
    }


def check_completion(state: TranslationWorkflowState) -> str:
    """
    Check if workflow is complete or should continue processing.

    Returns:
        "continue" if more batches to process
        "finalize" if all batches are complete
    """
    if state["current_batch_index"] >= len(state["batches"]):
        return "finalize"
    return "continue"


def finalize_workflow(state: TranslationWorkflowState) -> Dict[str, Any]:
    """
    Finalize the translation workflow.

    This node:
    - Calculates final statistics and token usage
    - Sets completion status
    """
    usage = TokenUsage()
    for result in state["batch_results"]:
        usage = usage + result.usage

    failed_batches = [r for r in state["batch_results"] if not r.success]
    failed_strings = sum(
        len(batch.items) for batch in state["batches"]
        if batch.batch_id in {r.batch_id for r in failed_batches}
    )

    metadata = dict(state["metadata"])
    metadata.update(create_processing_metadata(
        start_time=state["workflow_start_time"],
        end_time=time.time(),
        total_strings=state["total_strings"],
        model_name=state["model_name"],
        batch_size=effective_batch_size(state["original_request"]),
        success_count=len(state["final_results"]),
        error_count=failed_strings,
        usage=usage.model_dump(),
    ))
    metadata.update({
        "completed_at": datetime.now().isoformat(),
        "successful_batches": len(state["batch_results"]) - len(failed_batches),
        "failed_batches": len(failed_batches),
    })

    logger.info(
        "Workflow finished: %d of %d string(s) translated, %d failed batch(es)",
        len(state["final_results"]), state["total_strings"], len(failed_batches),
    )
    return {
        "workflow_status": "completed" if not failed_batches else "completed_with_errors",
        "metadata": metadata,
    }


def create_translation_workflow() -> StateGraph:
    """
    Create the LangGraph workflow for translation.

    Returns:
        Configured StateGraph for translation workflow
    """
    workflow = StateGraph(TranslationWorkflowState)

    workflow.add_node("initialize", initialize_workflow)
    workflow.add_node("process_batch", process_batch)
    workflow.add_node("finalize", finalize_workflow)

    workflow.set_entry_point("initialize")
    workflow.add_edge("initialize", "process_batch")

    # Loop until every batch has been processed
    workflow.add_conditional_edges(
        "process_batch",
        check_completion,
        {
            "continue": "process_batch",
            "finalize": "finalize",
        }
    )
    workflow.add_edge("finalize", END)

    return workflow


async def run_translation_workflow(request: TranslationJobRequest) -> TranslationWorkflowState:
    """
    Execute the translation workflow with the given request.

    Args:
        request: Translation job with files of strings and configuration

    Returns:
        Final workflow state with translation results
    """
    app = create_translation_workflow().compile()

    initial_state: TranslationWorkflowState = {
        "original_request": request,
        "batches": [],
        "current_batch_index": 0,
        "batch_results": [],
        "final_results": [],
        "total_strings": 0,
        "processed_strings": 0,
        "workflow_start_time": 0.0,
        "workflow_status": "initializing",
        "errors": [],
        "model_name": resolve_model_name(request),
        "model_params": request.model_params,
        "metadata": {},
    }

    # One step per wave plus initialize and finalize; a batch holds at least one string
    return await app.ainvoke(initial_state, config={"recursion_limit": max(25, request.total_strings + 10)})
