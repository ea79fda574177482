"""Stage orchestrator: runs the four analysis stages and assembles the report.

Stages run strictly one after another; each stage prompt embeds a summary of
the earlier stages' answers. The first stage that fails aborts the run with
PipelineError and no partial report.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from biosig.core.config.settings import Settings, get_settings
from biosig.core.llm.client import CompletionClient, create_completion_client
from biosig.core.llm.credentials import CredentialManager
from biosig.core.llm.errors import (
    CompletionTransportError,
    StructuredParseError,
    StructuredValidationError,
)
from biosig.core.llm.extraction import extract_structured, validate_fields
from biosig.core.llm.retry import DEFAULT_POLICY, SYNTHESIS_POLICY, RetryPolicy
from biosig.core.prompts.loader import load_template_directory
from biosig.core.prompts.models import AssembledPrompt
from biosig.core.prompts.registry import TemplateRegistry
from biosig.core.prompts.renderer import render_template
from biosig.domains.analysis.domain_logic.norm_table import NormTable
from biosig.domains.analysis.domain_logic.quality_assessor import assess_quality
from biosig.domains.analysis.domain_logic.quality_models import AdvancedQualityResult
from biosig.domains.analysis.domain_logic.risk_models import RiskAssessment
from biosig.domains.analysis.domain_logic.risk_scorer import quality_summary, score_risks
from biosig.domains.analysis.domain_logic.session import MeasurementSession
from biosig.domains.analysis.pipeline.context import (
    NormalizedMetrics,
    build_stage_context,
    normalize_measurements,
    summarize_prior_stages,
)
from biosig.domains.analysis.pipeline.errors import PipelineError
from biosig.domains.analysis.pipeline.report import AnalysisReport, assemble_report
from biosig.domains.analysis.pipeline.stages import (
    STAGE_ORDER,
    STAGE_REQUIRED_FIELDS,
    SYNTHESIS_STAGE,
    AnalysisStage,
    Parsed,
    ParseError,
    StageResult,
    TransportError,
)

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "prompts" / "stages"


def load_default_templates() -> TemplateRegistry:
    """Registry holding the bundled stage templates."""
    registry = TemplateRegistry()
    count = load_template_directory(_TEMPLATE_DIR, registry)
    logger.info("Loaded %d stage templates from %s", count, _TEMPLATE_DIR)
    return registry


class StageOrchestrator:
    """Drives one report generation through the ordered analysis stages."""

    def __init__(
        self,
        client: CompletionClient,
        registry: TemplateRegistry | None = None,
        default_policy: RetryPolicy = DEFAULT_POLICY,
        synthesis_policy: RetryPolicy = SYNTHESIS_POLICY,
        norm_table: NormTable | None = None,
    ) -> None:
        self.client = client
        self.registry = registry if registry is not None else load_default_templates()
        self.default_policy = default_policy
        self.synthesis_policy = synthesis_policy
        self.norm_table = norm_table
        self._check_templates()

    def _check_templates(self) -> None:
        for name in STAGE_ORDER:
            template = self.registry.for_stage(name)
            missing = set(STAGE_REQUIRED_FIELDS[name]) - set(template.required_fields)
            if missing:
                raise ValueError(
                    f"Template {template.id!r} does not declare required fields: {sorted(missing)}"
                )

    def policy_for(self, stage: str) -> RetryPolicy:
        return self.synthesis_policy if stage == SYNTHESIS_STAGE else self.default_policy

    async def run_stage(
        self,
        stage: AnalysisStage,
        prompt: AssembledPrompt,
        policy: RetryPolicy,
        max_output_tokens: int | None = None,
    ) -> StageResult:
        """Execute one stage: call, extract, validate.

        Transport failures are retried by the client; a parse or validation
        failure is final on the first answer.
        """
        stage.start(prompt)
        start = time.monotonic()
        required = list(
            dict.fromkeys(STAGE_REQUIRED_FIELDS.get(stage.name, []) + prompt.metadata.get("required_fields", []))
        )

        try:
            completion = await self.client.complete(
                prompt, policy, stage=stage.name, max_output_tokens=max_output_tokens
            )
        except CompletionTransportError as exc:
            elapsed = (time.monotonic() - start) * 1000
            logger.error("Stage %s: transport failure after %d attempts: %s", stage.name, exc.attempts, exc)
            return stage.fail(
                TransportError(
                    reason=str(exc),
                    attempts=exc.attempts,
                    status_code=exc.status_code,
                    error=exc,
                ),
                attempts=exc.attempts,
                elapsed_ms=elapsed,
            )

        elapsed = (time.monotonic() - start) * 1000
        try:
            data = validate_fields(extract_structured(completion.content), required)
        except StructuredValidationError as exc:
            logger.error("Stage %s: answer missing fields %s", stage.name, exc.missing)
            return stage.fail(
                ParseError(reason=str(exc), missing=exc.missing, error=exc),
                attempts=completion.attempts,
                elapsed_ms=elapsed,
                raw_response=completion.content,
            )
        except StructuredParseError as exc:
            logger.error("Stage %s: unparseable answer: %s", stage.name, exc)
            return stage.fail(
                ParseError(reason=str(exc), error=exc),
                attempts=completion.attempts,
                elapsed_ms=elapsed,
                raw_response=completion.content,
            )

        logger.info("Stage %s succeeded (%d attempts, %.0fms)", stage.name, completion.attempts, elapsed)
        return stage.succeed(completion.content, data, completion.attempts, elapsed)

    async def generate_report(
        self,
        session: MeasurementSession,
        quality: AdvancedQualityResult | None = None,
        risks: RiskAssessment | None = None,
        normalized: NormalizedMetrics | None = None,
    ) -> AnalysisReport:
        """Run every stage in order and assemble the final report.

        Deterministic inputs (quality, risks, normalized scores) are computed
        from the session when not supplied. Raises PipelineError on the first
        failed stage.
        """
        if quality is None:
            quality = assess_quality(session.accelerometer)
        if risks is None:
            risks = score_risks(
                session.eeg_values(),
                session.ppg_values(),
                session.personal_info,
                quality_summary(quality),
            )
        if normalized is None:
            normalized = normalize_measurements(session, risks, self.norm_table)

        started = time.monotonic()
        stages: list[AnalysisStage] = []
        outputs: dict[str, dict] = {}

        for name in STAGE_ORDER:
            template = self.registry.for_stage(name)
            context = build_stage_context(name, session, quality, risks, normalized)
            prior = summarize_prior_stages(outputs) if outputs else None
            prompt = render_template(template, context, prior)

            stage = AnalysisStage(name)
            stages.append(stage)
            result = await self.run_stage(
                stage, prompt, self.policy_for(name), template.max_output_tokens
            )
            if not isinstance(result, Parsed):
                raise PipelineError(name, result, stages) from result.error
            outputs[name] = result.data

        model = getattr(self.client.provider, "model", "") or self.policy_for(SYNTHESIS_STAGE).model
        metadata = {
            "sessionId": session.session_id,
            "measuredAt": session.measured_at.isoformat(),
            "model": model,
            "stages": [s.summary() for s in stages],
            "totalElapsedMs": round((time.monotonic() - started) * 1000, 1),
            "templates": {
                name: self.registry.for_stage(name).version for name in STAGE_ORDER
            },
            "normalizationNotes": normalized.notes,
        }
        report = assemble_report(outputs, session, quality, risks, normalized, metadata)
        logger.info(
            "Report generated: session=%s, overall=%.0f (%s), stages=%d",
            session.session_id,
            report.overall_score,
            report.overall_grade,
            len(stages),
        )
        return report


async def analyze_session(
    session: MeasurementSession,
    client: CompletionClient | None = None,
    *,
    settings: Settings | None = None,
    credentials: CredentialManager | None = None,
) -> AnalysisReport:
    """One-call entry point: configured client, bundled templates, full run.

    CompletionConfigError from credential resolution propagates before any
    stage runs.
    """
    settings = settings or get_settings()
    client = client or create_completion_client(settings, credentials)
    orchestrator = StageOrchestrator(
        client,
        default_policy=settings.default_policy(),
        synthesis_policy=settings.synthesis_policy(),
    )
    return await orchestrator.generate_report(session)
