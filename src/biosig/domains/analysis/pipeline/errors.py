"""Pipeline-fatal errors."""

from __future__ import annotations

from biosig.domains.analysis.pipeline.stages import AnalysisStage, ParseError, TransportError


class PipelineError(Exception):
    """A stage failed and the remaining stages were abandoned.

    No partial report is produced. ``stage`` names the failed stage and
    ``cause`` holds its ParseError or TransportError result.
    """

    def __init__(
        self,
        stage: str,
        cause: ParseError | TransportError,
        stages: list[AnalysisStage] | None = None,
    ) -> None:
        kind = "transport failure" if isinstance(cause, TransportError) else "parse failure"
        super().__init__(f"Stage '{stage}' failed ({kind}): {cause.reason}")
        self.stage = stage
        self.cause = cause
        self.stages = stages or []

    @property
    def is_transport_failure(self) -> bool:
        return isinstance(self.cause, TransportError)
