"""
Serialization of Pod descriptors into manifest data.
"""

from typing import Any, Dict

import yaml
from kubernetes.client import ApiClient, V1Pod


def pod_to_dict(pod: V1Pod) -> Dict[str, Any]:
    """
    Convert a Pod into plain manifest data.

    Keys use the camelCase names of the Kubernetes API and unset fields are
    dropped, so the result can be submitted or diffed as-is.
    """
    data = ApiClient().sanitize_for_serialization(pod)
    data.setdefault("apiVersion", "v1")
    data.setdefault("kind", "Pod")
    return data


def pod_to_yaml(pod: V1Pod) -> str:
    return yaml.dump(pod_to_dict(pod), default_flow_style=False, sort_keys=False)
