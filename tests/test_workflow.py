"""Tests for the LangGraph translation workflow."""

import pytest
from unittest.mock import MagicMock, patch

from src.ai_translator.exceptions import TransportError
from src.ai_translator.models.records import TokenUsage
from src.ai_translator.workflows.batching import effective_batch_size, plan_batches, translate_batch
from src.ai_translator.workflows.translation_state import BatchRequest, TranslationJobRequest
from graph import (
    initialize_workflow,
    process_batch,
    check_completion,
    finalize_workflow,
    create_translation_workflow,
    run_translation_workflow
)

from conftest import EchoTransport, ScriptedTransport


@pytest.fixture
def sample_request():
    """Two files, one of which needs two batches."""
    return TranslationJobRequest(
        files={
            "auth.php": {
                "failed": "These credentials do not match our records.",
                "password": "The provided password is incorrect.",
                "throttle": "Too many login attempts.",
            },
            "messages.json": {"welcome": {"text": "Welcome, :name!", "context": "Dashboard header"}},
        },
        source_locale="en",
        target_locale="fr",
        model_name="claude-sonnet-4-5-20250929",
        batch_size=2,
        max_attempts=2,
    )


@pytest.fixture
def initial_state(sample_request):
    """Initial workflow state for testing."""
    return {
        "original_request": sample_request,
        "batches": [],
        "current_batch_index": 0,
        "batch_results": [],
        "final_results": [],
        "total_strings": 0,
        "processed_strings": 0,
        "workflow_start_time": 0.0,
        "workflow_status": "initializing",
        "errors": [],
        "model_name": sample_request.model_name,
        "model_params": sample_request.model_params,
        "metadata": {}
    }


def patch_router(transport):
    router = MagicMock()
    router.get_transport.return_value = transport
    return patch("src.ai_translator.workflows.batching.get_model_router", return_value=router)


class TestBatchPlanning:
    """Splitting jobs into batches."""

    def test_plan_batches(self, sample_request):
        batches = plan_batches(sample_request)

        assert [b.batch_id for b in batches] == ["auth.php#1", "auth.php#2", "messages.json"]
        assert batches[0].keys == ["failed", "password"]
        assert batches[1].keys == ["throttle"]
        assert batches[2].items["welcome"].context == "Dashboard header"
        assert all(b.target_locale == "fr" for b in batches)

    def test_batch_size_is_capped(self, sample_request):
        request = sample_request.model_copy(update={"batch_size": 10_000})

        assert effective_batch_size(request) == 100

    def test_default_batch_size(self, sample_request):
        request = sample_request.model_copy(update={"batch_size": None})

        assert [b.batch_id for b in plan_batches(request)] == ["auth.php", "messages.json"]


class TestWorkflowInitialization:
    """Test workflow initialization."""

    def test_initialize_workflow(self, initial_state):
        result = initialize_workflow(initial_state)

        assert len(result["batches"]) == 3
        assert result["total_strings"] == 4
        assert result["workflow_status"] == "running"
        assert result["metadata"]["total_batches"] == 3
        assert result["model_name"] == "claude-sonnet-4-5-20250929"


class TestBatchProcessing:
    """Test batch processing."""

    @pytest.mark.asyncio
    async def test_process_wave(self, initial_state):
        state = {**initial_state, **initialize_workflow(initial_state)}

        with patch_router(EchoTransport()):
            result = await process_batch(state)

        assert result["current_batch_index"] == 3
        assert result["processed_strings"] == 4
        assert result["errors"] == []
        assert {(r.file, r.key) for r in result["final_results"]} == {
            ("auth.php", "failed"),
            ("auth.php", "password"),
            ("auth.php", "throttle"),
            ("messages.json", "welcome"),
        }

    @pytest.mark.asyncio
    async def test_failed_batch_is_recorded(self, initial_state):
        state = {**initial_state, **initialize_workflow(initial_state)}

        with patch_router(EchoTransport(drop={"password"})):
            result = await process_batch(state)

        assert len(result["errors"]) == 1
        assert result["errors"][0]["batch_id"] == "auth.php#1"
        assert result["errors"][0]["missing_keys"] == ["password"]
        assert len(result["final_results"]) == 2

    def test_check_completion(self, initial_state):
        state = {**initial_state, **initialize_workflow(initial_state)}

        assert check_completion(state) == "continue"
        state["current_batch_index"] = 3
        assert check_completion(state) == "finalize"


class TestTranslateBatch:
    """Running one batch end to end."""

    @pytest.fixture
    def batch(self):
        return BatchRequest(batch_id="auth.php", source_locale="en", target_locale="fr", items={"failed": "Failed"})

    @pytest.mark.asyncio
    async def test_success(self, batch):
        usage = TokenUsage(input_tokens=10, output_tokens=5, total_tokens=15)
        with patch_router(EchoTransport(usage=usage)) as get_router:
            result = await translate_batch(batch, "claude-sonnet-4-5-20250929", {"temperature": "0.5", "seed": 1})

        assert result.success is True
        assert result.results[0].translated_text == "[target] failed"
        assert result.attempts == 1
        assert result.usage.total_tokens == 15
        get_router.return_value.get_transport.assert_called_once_with("claude-sonnet-4-5-20250929", temperature=0.5)

    @pytest.mark.asyncio
    async def test_transport_error_captured(self, batch):
        with patch_router(ScriptedTransport([TransportError("quota exceeded")])):
            result = await translate_batch(batch, "gpt-4o")

        assert result.success is False
        assert "quota exceeded" in result.error_message
        assert result.missing_keys == []

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, batch):
        router = MagicMock()
        router.get_transport.side_effect = ValueError("OPENAI_API_KEY is required for OpenAI models")

        with patch("src.ai_translator.workflows.batching.get_model_router", return_value=router):
            with pytest.raises(ValueError):
                await translate_batch(batch, "gpt-4o")


class TestWorkflowFinalization:
    """Test workflow finalization."""

    @pytest.mark.asyncio
    async def test_finalize_with_errors(self, initial_state):
        state = {**initial_state, **initialize_workflow(initial_state)}
        with patch_router(EchoTransport(drop={"welcome"})):
            state.update(await process_batch(state))

        result = finalize_workflow(state)

        assert result["workflow_status"] == "completed_with_errors"
        assert result["metadata"]["successful_translations"] == 3
        assert result["metadata"]["failed_translations"] == 1
        assert result["metadata"]["failed_batches"] == 1
        assert result["metadata"]["batch_size"] == 2


class TestWorkflowIntegration:
    """Test complete workflow integration."""

    def test_create_workflow(self):
        workflow = create_translation_workflow()

        assert {"initialize", "process_batch", "finalize"} <= set(workflow.nodes)

    @pytest.mark.asyncio
    async def test_run_translation_workflow(self, sample_request):
        usage = TokenUsage(input_tokens=100, output_tokens=20, total_tokens=120)
        with patch_router(EchoTransport(usage=usage)):
            final_state = await run_translation_workflow(sample_request)

        assert final_state["workflow_status"] == "completed"
        assert len(final_state["final_results"]) == 4
        assert final_state["metadata"]["token_usage"]["total_tokens"] == 360
        assert final_state["metadata"]["success_rate"] == 100.0

    @pytest.mark.asyncio
    async def test_run_with_failed_batch(self, sample_request):
        with patch_router(EchoTransport(drop={"throttle"})):
            final_state = await run_translation_workflow(sample_request)

        assert final_state["workflow_status"] == "completed_with_errors"
        assert final_state["errors"][0]["batch_id"] == "auth.php#2"
        assert sorted(r.key for r in final_state["final_results"]) == ["failed", "password", "welcome"]
