"""
MCP tool implementations for previewing instance Pods.

The server module registers these functions with FastMCP. They only render
descriptors from a cluster manifest supplied by the caller and never touch
a Kubernetes cluster.
"""

import json
import logging
from typing import Literal

import yaml
from kubernetes.client import V1Pod
from pydantic import BaseModel, Field, ValidationError

from cnpg_pods.cluster import load_cluster_manifest
from cnpg_pods.config import PodSettings, load_settings
from cnpg_pods.pods import PodBuilder, PodRole, is_primary
from cnpg_pods.render import pod_to_dict, pod_to_yaml

logger = logging.getLogger(__name__)

CHARACTER_LIMIT = 25000

_builder = None


def get_pod_builder() -> PodBuilder:
    """Get or create the PodBuilder used by the tools (lazy initialization)."""
    global _builder
    if _builder is None:
        _builder = PodBuilder(load_settings())
    return _builder


def set_pod_settings(settings: PodSettings) -> None:
    """Replace the settings used by the tools."""
    global _builder
    _builder = PodBuilder(settings)


# ============================================================================
# Utility Functions
# ============================================================================

def truncate_response(content: str, max_length: int = CHARACTER_LIMIT) -> str:
    """Truncate response content to stay within character limits."""
    if len(content) <= max_length:
        return content

    truncated = content[:max_length - 100]
    return f"{truncated}\n\n... (truncated, {len(content) - max_length} characters omitted)"


def format_error_message(error: Exception, context: str = "") -> str:
    """Format error messages in an LLM-friendly, actionable way."""
    suggestion = ""
    if isinstance(error, ValidationError):
        problems = []
        for err in error.errors():
            location = ".".join(str(part) for part in err.get("loc", ()))
            problems.append(f"  - {location or '(root)'}: {err.get('msg')}")
        if error.title == RenderPodInput.__name__:
            message = "invalid tool arguments\n" + "\n".join(problems)
            suggestion = (
                "node_serial must be a non-negative integer and role one of: "
                + ", ".join(r.value for r in PodRole)
            )
        else:
            message = "invalid cluster specification\n" + "\n".join(problems)
            suggestion = (
                "Check the manifest against the Cluster resource: metadata.name is "
                "required and spec fields use camelCase keys."
            )
    elif isinstance(error, yaml.YAMLError):
        message = f"manifest is not valid YAML: {error}"
        suggestion = "Pass the Cluster manifest as a YAML or JSON document."
    else:
        message = str(error)

    result = "Error"
    if context:
        result += f" while {context}"
    result += f": {message}"
    if suggestion:
        result += f"\n\nSuggestion: {suggestion}"
    return result


def summarize_pod(pod: V1Pod) -> str:
    """Format a Pod descriptor in a human-readable way."""
    metadata = pod.metadata
    spec = pod.spec

    result = f"**Pod: {metadata.namespace}/{metadata.name}**\n"
    result += f"- Primary: {'yes' if is_primary(pod) else 'no'}\n"
    result += f"- Labels: {', '.join(f'{k}={v}' for k, v in metadata.labels.items())}\n"
    result += f"- Init containers: {', '.join(c.name for c in spec.init_containers)}\n"

    data_volume = spec.volumes[0]
    if data_volume.persistent_volume_claim is not None:
        result += f"- Data volume: PVC {data_volume.persistent_volume_claim.claim_name}\n"
    else:
        result += "- Data volume: emptyDir (ephemeral)\n"

    container = spec.containers[0]
    result += f"- Image: {container.image}\n"
    result += f"- Liveness initial delay: {container.liveness_probe.initial_delay_seconds}s\n"
    result += f"- Pre-stop: {' '.join(container.lifecycle.pre_stop._exec.command)}\n"

    if spec.affinity is None:
        result += "- Anti-affinity: disabled\n"
    else:
        term = spec.affinity.pod_anti_affinity.preferred_during_scheduling_ignored_during_execution[0]
        result += (
            f"- Anti-affinity: preferred (weight {term.weight}, "
            f"topology key {term.pod_affinity_term.topology_key})\n"
        )

    return result


# ============================================================================
# Pydantic Models for Tool Inputs
# ============================================================================

class RenderPodInput(BaseModel):
    """Input for rendering an instance Pod."""
    cluster_manifest: str = Field(
        ...,
        description="The Cluster manifest as YAML (or JSON).",
        min_length=1
    )
    node_serial: int = Field(
        ...,
        description="Serial number of the instance; the Pod is named <cluster>-<serial>.",
        ge=0
    )
    role: PodRole = Field(
        PodRole.PRIMARY,
        description="'primary' bootstraps a new primary, 'replica' joins an existing primary, 'existing-storage' restarts on existing PGDATA."
    )
    output_format: Literal["yaml", "json"] = Field(
        "yaml",
        description="Format of the rendered Pod."
    )


# ============================================================================
# Tools
# ============================================================================

def _build_pod(params: RenderPodInput) -> V1Pod:
    cluster = load_cluster_manifest(params.cluster_manifest)
    return get_pod_builder().build(cluster, params.node_serial, params.role)


def render_instance_pod(
    cluster_manifest: str,
    node_serial: int,
    role: str = "primary",
    output_format: str = "yaml"
) -> str:
    """
    Render the Pod the operator would create for one cluster instance.

    Args:
        cluster_manifest: Cluster manifest as YAML or JSON text.
        node_serial: Non-negative serial number of the instance.
        role: 'primary', 'replica' or 'existing-storage'.
        output_format: 'yaml' (default) or 'json'.

    Returns:
        The Pod manifest, or an error message with a suggestion if the
        input could not be used.

    Examples:
        - New primary: render_instance_pod(cluster_manifest=..., node_serial=1)
        - Second instance: render_instance_pod(cluster_manifest=..., node_serial=2, role="replica")
    """
    try:
        params = RenderPodInput(
            cluster_manifest=cluster_manifest,
            node_serial=node_serial,
            role=role,
            output_format=output_format,
        )
        pod = _build_pod(params)
    except (ValidationError, yaml.YAMLError, ValueError) as e:
        return format_error_message(e, "rendering instance pod")

    logger.info(f"Rendered {params.role.value} pod {pod.metadata.namespace}/{pod.metadata.name}")

    if params.output_format == "json":
        return truncate_response(json.dumps(pod_to_dict(pod), indent=2))
    return truncate_response(pod_to_yaml(pod))


def describe_instance_pod(
    cluster_manifest: str,
    node_serial: int,
    role: str = "primary"
) -> str:
    """
    Summarize the Pod the operator would create for one cluster instance.

    Same arguments as render_instance_pod, without output_format.
    """
    try:
        params = RenderPodInput(
            cluster_manifest=cluster_manifest,
            node_serial=node_serial,
            role=role,
        )
        pod = _build_pod(params)
    except (ValidationError, yaml.YAMLError, ValueError) as e:
        return format_error_message(e, "describing instance pod")

    return summarize_pod(pod)
