"""Exception policies, frameworks and collaboration configurations."""

from pydantic import BaseModel, ConfigDict, Field

from apps.base.models import BaseDocument, RenamableDocument


class PolicyDesignator(BaseModel):
    """Resource selector of an exception policy."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    designator_type: str | None = Field(None, alias="designatorType")
    attributes: dict[str, object] | None = None


class PostureExceptionPolicy(BaseDocument):
    policy_type: str | None = Field(None, alias="policyType")
    actions: list[str] | None = None
    resources: list[PolicyDesignator] | None = None
    posture_policies: list[dict[str, object]] | None = Field(
        None, alias="posturePolicies"
    )


class VulnerabilityExceptionPolicy(BaseDocument):
    policy_type: str | None = Field(None, alias="policyType")
    actions: list[str] | None = None
    designators: list[PolicyDesignator] | None = None
    vulnerabilities: list[dict[str, object]] | None = None
    expiration_date: str | None = Field(None, alias="expirationDate")


class Framework(BaseDocument):
    """Framework of controls, may be a global (built in) document."""

    description: str | None = None
    controls_ids: list[str] | None = Field(None, alias="controlsIDs")


class CollaborationConfig(RenamableDocument):
    """Connection to an external collaboration provider."""

    provider: str | None = None
    host_url: str | None = Field(None, alias="hostUrl")
    context: dict[str, object] | None = None
