"""
Saving of the downloaded Kubernetes configs (kubeconfigs) to local files.

The kubeconfigs are the only non-JSON payloads of the control plane's API.
They are YAML documents with the cluster's credentials, so they are stored
as they are, byte by byte, to be used with ``kubectl --kubeconfig=...``.
"""
import collections.abc
import os
import pathlib
import re
from typing import Optional

import yaml

from bcc._cogs.clients import errors

KUBECTL_CONFIG_PATH = r'/v1/kubernetes/([^/]+)/config'
KUBECTL_CONFIG_MODE = 0o644


def is_kubectl_config(url: str) -> bool:
    return 'config' in url


def extract_cluster_id(url: str, *, base_url: str) -> str:
    pattern = re.escape(base_url.rstrip('/')) + KUBECTL_CONFIG_PATH
    match = re.search(pattern, url)
    if match is None:
        raise errors.CredentialExportError(f"No cluster id found in the URL: {url}")
    return match.group(1)


def save_kubectl_config(
        payload: bytes,
        *,
        url: str,
        base_url: str,
        directory: Optional[str] = None,
) -> pathlib.Path:
    """
    Verify the downloaded kubeconfig and store it as ``kubectl-{id}.yaml``.

    The file is stored in the current working directory unless specified.
    """
    try:
        data = yaml.safe_load(payload)
    except yaml.YAMLError as e:
        text = payload.decode('utf-8', errors='replace')
        raise errors.CredentialExportError(f"YAML decode failed on {url}:\n{text}") from e
    if not isinstance(data, collections.abc.Mapping):
        text = payload.decode('utf-8', errors='replace')
        raise errors.CredentialExportError(f"YAML is not a mapping on {url}:\n{text}")

    cluster_id = extract_cluster_id(url, base_url=base_url)
    path = pathlib.Path(directory if directory is not None else os.getcwd()) / f'kubectl-{cluster_id}.yaml'
    try:
        path.write_bytes(payload)
        path.chmod(KUBECTL_CONFIG_MODE)
    except OSError as e:
        raise errors.CredentialExportError(f"Cannot save the Kubernetes config to {str(path)!r}") from e
    return path
