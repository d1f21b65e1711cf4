"""Configuration model for a single aggregation run."""

from pathlib import Path

from pydantic import BaseModel, Field


class AggregationOptions(BaseModel):
    """Options controlling how shards are merged and annotated."""

    repo_path: Path | None = Field(
        default=None, description="Repository root used to locate test sources"
    )
    codeowners_path: Path | None = Field(
        default=None, description="Path to the CODEOWNERS file"
    )
    report_id: str | None = Field(
        default=None, description="Report identifier, generated when absent"
    )
    repo_url: str = Field(default="", description="Repository URL")
    branch_name: str = Field(default="", description="Branch name")
    head_sha: str = Field(default="", description="Head commit SHA")
    base_sha: str = Field(default="", description="Base commit SHA")
    github_workflow_name: str = Field(default="", description="GitHub workflow name")
    github_workflow_run_url: str = Field(
        default="", description="GitHub workflow run URL"
    )
    max_pass_ratio: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Tests passing less often than this are flaky",
    )
    strict: bool = Field(
        default=False, description="Abort on malformed shards instead of skipping"
    )
    deduplicate_shards: bool = Field(
        default=False, description="Ignore shards whose content was already read"
    )
    recursive: bool = Field(
        default=True, description="Search the results directory recursively"
    )
