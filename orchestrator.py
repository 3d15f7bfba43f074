"""Main orchestrator for educational visualization generation."""

import time
import logging
import threading
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import Settings
from errors import ConfigurationError, ProviderError

# LLM components
from llm.factory import create_llm_clients, LLMProvider
from llm.base_client import BaseLLMClient

# Memory components
from memory.compression import CompressionPolicy, ContextCompressionEngine
from memory.knowledge_base import UNKNOWN_CONCEPT, EducationalKnowledgeBase
from memory.models import ConversationTurn, EducationalConcept, MemoryLayers, ProjectState, TurnMetadata
from memory.tokens import create_token_estimator

# Routing and validation
from agents.catalog import default_catalog
from agents.checks import ValidationPolicy
from agents.prompts import EDUCATIONAL_SYSTEM_PROMPT, build_regeneration_prompt, build_user_prompt
from agents.router import ModelRouter
from agents.validator import StreamingValidator

from ledger.cost_ledger import CostLedger
from retrieval.example_provider import ExampleProvider, InMemoryExampleProvider
from schemas.context import Subject
from schemas.cost import TokenUsage
from schemas.generation import CostBreakdown, GenerationMetadata, GenerationOptions, GenerationResult
from schemas.retrieval import RetrievalResult
from schemas.routing import ModelCatalog, RoutingDecision
from schemas.validation import StreamEventType, ValidationResult

logger = logging.getLogger(__name__)

CORPUS_ACCURACY_THRESHOLD = 0.8
DEFAULT_VISUALIZATION_QUALITY = 0.8


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return text

    lines = stripped.splitlines()[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines)


def chunk_fragments(fragments: Iterable[str], min_size: int) -> Iterator[str]:
    """Merge small streamed deltas into fragments of at least min_size characters."""
    buffer = ""
    for fragment in fragments:
        buffer += fragment
        if len(buffer) >= min_size:
            yield buffer
            buffer = ""
    if buffer:
        yield buffer


class VisualizationOrchestrator:
    """
    Runs one conversation's generation pipeline.

    Holds the conversation history and compression state, so one instance
    serves one session. The cost ledger may be shared between instances.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clients: Optional[Dict[LLMProvider, BaseLLMClient]] = None,
        example_provider: Optional[ExampleProvider] = None,
        ledger: Optional[CostLedger] = None,
        catalog: Optional[ModelCatalog] = None,
        validation_policy: Optional[ValidationPolicy] = None,
        knowledge_base: Optional[EducationalKnowledgeBase] = None
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            clients: Provider clients; built from the settings' API keys when omitted
            example_provider: Source of few-shot examples
            ledger: Cost ledger, shareable between orchestrators
            catalog: Model tiers
            validation_policy: Validator thresholds
            knowledge_base: Concept graph and session learning progress
        """
        self.settings = settings or Settings()

        if clients is None:
            clients = create_llm_clients({
                provider: self.settings.get_api_key(provider) for provider in LLMProvider
            })
        if not clients:
            logger.warning("No LLM provider configured. Generation requests will fail.")

        self.estimator = create_token_estimator(self.settings.token_estimator)
        self.router = ModelRouter(
            catalog=catalog or default_catalog(),
            clients=clients,
            default_provider=self.settings.default_provider,
            estimator=self.estimator
        )
        self.compression = ContextCompressionEngine(
            estimator=self.estimator,
            policy=CompressionPolicy(max_active_turns=self.settings.max_active_turns)
        )
        self.example_provider = example_provider or InMemoryExampleProvider()
        self.ledger = ledger or CostLedger(budget_limits=self.settings.budget_limits)
        self.validation_policy = validation_policy or ValidationPolicy()
        self.knowledge_base = knowledge_base or EducationalKnowledgeBase()

        self.history: list[ConversationTurn] = []
        self._history_lock = threading.Lock()

        logger.info(
            f"Orchestrator initialized with providers: "
            f"{', '.join(p.value for p in clients) or 'none'}"
        )

    def generate_visualization(
        self,
        prompt: str,
        options: Optional[GenerationOptions] = None,
        on_fragment: Optional[Callable[[str], None]] = None
    ) -> GenerationResult:
        """
        Generate and validate a D3.js visualization for a prompt.

        Args:
            prompt: User request
            options: Per-request options
            on_fragment: Called with each streamed code fragment

        Returns:
            GenerationResult with the code, its validation and costs

        Raises:
            BudgetExceeded: If a spend ceiling has been reached
            ConfigurationError: If no provider can serve the chosen tier
            ProviderError: If the provider keeps failing after retries, or a
                stream fails after fragments were passed to on_fragment
        """
        options = options or GenerationOptions()
        goal = options.optimization_goal or self.settings.optimization_goal
        streaming = self.settings.streaming if options.streaming is None else options.streaming
        subject = options.subject
        start = time.monotonic()

        if self.settings.verbose:
            print(f"\n{'='*60}")
            print(f"GENERATING: {prompt}")
            print(f"SUBJECT: {subject.value} | GOAL: {goal.value} | STREAMING: {streaming}")
            print(f"{'='*60}\n")

        # Step 1: Record the request and compress the conversation
        self._append_turn(ConversationTurn(
            role="user",
            content=prompt,
            metadata=TurnMetadata(subject=subject.value)
        ))
        self.knowledge_base.record_conversation(prompt)
        compression = self.compression.compress(self.history_snapshot(), self.settings.context_token_budget)

        if self.settings.verbose:
            print(f"[Compression] {compression.original_token_count} -> {compression.token_count} tokens "
                  f"(ratio {compression.compression_ratio:.2f})")

        # Step 2: Retrieve examples and related concepts
        examples = self._retrieve_examples(prompt, subject)
        concepts = self.knowledge_base.find_similar_concepts(prompt, self.settings.related_concepts_limit)

        # Step 3: Build context, classify and route
        context = self.build_context(compression.compressed, examples, concepts)
        task_type = self.router.classify_task(prompt)
        decision = self.router.route(task_type, prompt, context, goal)

        if self.settings.verbose:
            print(f"[Router] {task_type.value} -> {decision.model.name} ({decision.reason})")

        # Step 4: Generate and validate
        user_prompt = build_user_prompt(prompt, subject, context)
        cost_breakdown: list[CostBreakdown] = []

        code, validation = self._generate_tracked(
            decision, user_prompt, streaming, bool(examples), context, cost_breakdown, on_fragment
        )

        # Step 5: Regenerate with validator feedback
        regenerated = False
        if options.allow_regeneration:
            for _ in range(self.settings.max_regenerations):
                if validation.is_valid:
                    break
                logger.info(f"Regenerating after {len(validation.errors)} validation error(s)")
                if self.settings.verbose:
                    print(f"[Validator] Invalid, regenerating: {validation.feedback()}")

                retry_prompt = build_regeneration_prompt(user_prompt, code, validation.feedback())
                code, validation = self._generate_tracked(
                    decision, retry_prompt, False, bool(examples), context, cost_breakdown, None
                )
                regenerated = True

        if self.settings.verbose:
            print(f"[Validator] valid={validation.is_valid} errors={len(validation.errors)} "
                  f"warnings={len(validation.warnings)}")

        # Step 6: Remember the answer
        self._append_turn(ConversationTurn(
            role="assistant",
            content=code,
            metadata=TurnMetadata(subject=subject.value, visualization_type=task_type.value)
        ))

        # Step 7: Keep good results as future examples and track concept progress
        if validation.is_valid and (validation.scientific_accuracy or 0.0) > CORPUS_ACCURACY_THRESHOLD:
            try:
                self.example_provider.add_to_corpus(
                    code,
                    concept_type=subject.value,
                    source="user-generated",
                    complexity=decision.complexity
                )
            except Exception as e:
                logger.warning(f"Failed to add visualization to example corpus: {e}")

            self.knowledge_base.add_generated_visualization(
                concepts[0].id if concepts else UNKNOWN_CONCEPT,
                code,
                prompt,
                validation.pedagogical_quality or DEFAULT_VISUALIZATION_QUALITY
            )

        return GenerationResult(
            code=code,
            validation=validation,
            total_cost=sum(item.cost for item in cost_breakdown),
            cost_breakdown=cost_breakdown,
            metadata=GenerationMetadata(
                task_type=task_type.value,
                model_tier=decision.model.tier.value,
                routing_reason=decision.reason,
                routing_confidence=decision.confidence,
                preserved_concepts=compression.preserved_concepts,
                retrieval_sources=[r.example.id for r in examples],
                concepts_used=[c.name for c in concepts],
                compression_ratio=compression.compression_ratio,
                generation_time_seconds=time.monotonic() - start,
                regenerated=regenerated
            )
        )

    def _retrieve_examples(self, prompt: str, subject: Subject) -> list[RetrievalResult]:
        """Relevant examples, or none if retrieval fails."""
        try:
            return self.example_provider.retrieve_relevant_code(
                prompt,
                k=self.settings.retrieval_top_k,
                concept_type=subject.value
            )
        except Exception as e:
            logger.warning(f"Example retrieval failed, continuing without examples: {e}")
            return []

    @staticmethod
    def build_context(
        turns: list[ConversationTurn],
        examples: list[RetrievalResult],
        concepts: Optional[list[EducationalConcept]] = None
    ) -> str:
        """Render compressed history, examples and related concepts as prompt context."""
        parts = []
        if turns:
            history = "\n".join(f"{turn.role}: {turn.content}" for turn in turns)
            parts.append(f"Conversation so far:\n{history}")
        for i, result in enumerate(examples, 1):
            parts.append(f"Example {i} ({result.example.concept_type or 'general'}):\n{result.example.content}")
        if concepts:
            lines = ["Related educational concepts:"]
            for concept in concepts:
                lines.append(f"- {concept.name}: {concept.description}")
                if concept.formulas:
                    lines.append(f"  Formulas: {', '.join(concept.formulas)}")
            parts.append("\n".join(lines))
        return "\n\n".join(parts)

    def _retrying(self, can_retry: Callable[[BaseException], bool] = lambda e: True) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.settings.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.settings.retry_backoff_multiplier,
                max=self.settings.retry_backoff_max
            ),
            retry=retry_if_exception_type(ProviderError) & retry_if_exception(can_retry),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )

    def _generate_tracked(
        self,
        decision: RoutingDecision,
        user_prompt: str,
        streaming: bool,
        cached: bool,
        context: str,
        cost_breakdown: list[CostBreakdown],
        on_fragment: Optional[Callable[[str], None]]
    ) -> Tuple[str, ValidationResult]:
        """Check the budget, generate with retries, validate and record the cost."""
        self.ledger.check_budget()

        emitted: list[str] = []

        def forward(fragment: str):
            emitted.append(fragment)
            on_fragment(fragment)

        # A stream that already reached the caller cannot be replayed
        for attempt in self._retrying(can_retry=lambda e: not emitted):
            with attempt:
                code, validation, usage = self._generate_once(
                    decision, user_prompt, streaming, forward if on_fragment else None
                )

        token_usage = self._token_usage(usage, user_prompt, code, context if cached else "")
        entry = self.ledger.track_usage(
            model=decision.model.model,
            provider=decision.model.provider.value,
            usage=token_usage,
            request_type="visualization_generation",
            cached=cached
        )
        cost_breakdown.append(CostBreakdown(
            model=decision.model.model,
            tokens=token_usage.total_tokens,
            cached=cached,
            cost=entry.cost
        ))
        return code, validation

    def _generate_once(
        self,
        decision: RoutingDecision,
        user_prompt: str,
        streaming: bool,
        on_fragment: Optional[Callable[[str], None]]
    ) -> Tuple[str, ValidationResult, Optional[Dict[str, int]]]:
        """One provider call plus validation."""
        validator = StreamingValidator(self.validation_policy)

        if not streaming:
            response = self.router.generate(
                decision,
                EDUCATIONAL_SYSTEM_PROMPT,
                user_prompt,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens
            )
            code = strip_code_fences(response.content)
            return code, validator.validate(code), response.usage

        fragments = chunk_fragments(
            self.router.stream(
                decision,
                EDUCATIONAL_SYSTEM_PROMPT,
                user_prompt,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens
            ),
            self.settings.stream_chunk_size
        )

        validation = ValidationResult()
        for event in validator.validate_stream(fragments):
            if event.type == StreamEventType.CODE and on_fragment:
                on_fragment(event.content)
            elif event.type == StreamEventType.VALIDATION:
                validation = event.validation

        code = strip_code_fences(validator.code)
        if code != validator.code:
            validation = StreamingValidator(self.validation_policy).validate(code)
        if not code.strip():
            raise ProviderError("Empty response from provider stream", provider=decision.model.provider.value)
        return code, validation, None

    def _token_usage(
        self,
        usage: Optional[Dict[str, int]],
        user_prompt: str,
        code: str,
        cached_context: str
    ) -> TokenUsage:
        """Provider-reported usage, or an estimate when the provider gave none."""
        if usage:
            prompt_tokens = usage.get("prompt_tokens", 0)
            completion_tokens = usage.get("completion_tokens", 0)
        else:
            prompt_tokens = self.estimator.estimate(EDUCATIONAL_SYSTEM_PROMPT + user_prompt)
            completion_tokens = self.estimator.estimate(code)

        # Retrieved examples are assumed to hit the provider's prompt cache about half the time
        cached_tokens = min(self.estimator.estimate(cached_context) // 2, prompt_tokens)
        return TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            cached_tokens=cached_tokens
        )

    def _append_turn(self, turn: ConversationTurn):
        with self._history_lock:
            self.history.append(turn)

    def history_snapshot(self) -> list[ConversationTurn]:
        with self._history_lock:
            return list(self.history)

    def get_usage_report(self) -> dict:
        """Routing metrics, spend and recommendations."""
        return {
            "routing": self.router.get_usage_report().model_dump(),
            "costs": self.ledger.get_cost_summary().model_dump(),
            "budget_alerts": [alert.model_dump() for alert in self.ledger.budget_alerts()],
            "corpus": self.example_provider.get_corpus_stats().model_dump(),
            "knowledge_base": self.knowledge_base.get_usage_statistics().model_dump(),
            "recommended_concepts": [c.name for c in self.knowledge_base.get_recommended_concepts(3)],
            "recommendations": (
                self.router.get_cost_optimization_recommendations()
                + self.ledger.get_optimization_recommendations()
            ),
        }

    def export_memory(self) -> dict:
        """Conversation history and memory layers as JSON-compatible data."""
        return {
            "history": [turn.model_dump(mode="json") for turn in self.history_snapshot()],
            "memory": self.compression.get_memory_state().model_dump(mode="json"),
            "knowledge": self.knowledge_base.export_state().model_dump(mode="json"),
        }

    def import_memory(self, data: dict):
        """
        Restore a previously exported conversation.

        Raises:
            ConfigurationError: If the data is not a valid export
        """
        try:
            history = [ConversationTurn.model_validate(turn) for turn in data.get("history", [])]
            memory = MemoryLayers.model_validate(data.get("memory", {}))
            knowledge = ProjectState.model_validate(data.get("knowledge", {}))
        except (AttributeError, ValueError) as e:
            raise ConfigurationError(f"Invalid memory export: {e}") from e

        with self._history_lock:
            self.history = history
        self.compression.restore_memory_state(memory)
        self.knowledge_base.restore_state(knowledge)
        logger.info(f"Imported {len(history)} conversation turns")

    def reset(self):
        """Start a new conversation."""
        with self._history_lock:
            self.history = []
        self.compression.reset()
        self.knowledge_base.reset()
