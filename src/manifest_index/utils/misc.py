from __future__ import annotations

import argparse
from collections import namedtuple
from concurrent import futures
from concurrent.futures.thread import ThreadPoolExecutor
import functools
import logging
import os
import re
from typing import Any, Callable, Dict, List, cast

from ..exceptions import ReferenceParseError

LOG = logging.getLogger("manifest_index")

DOCKER_HUB_REGISTRY = "docker.io"
DOCKER_HUB_API_HOST = "registry-1.docker.io"
DOCKER_HUB_ALIASES = (
    "docker.io",
    "index.docker.io",
    "registry-1.docker.io",
    "https://index.docker.io/v1/",
)

_PATH_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_DIGEST_RE = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-zA-Z0-9=_-]{32,}$")

ImageReference = namedtuple("ImageReference", ["registry", "repository", "reference"])


def setup_arg_parser(args: Dict[Any, Any]) -> argparse.ArgumentParser:
    """
    Set up ArgumentParser with the provided arguments.

    Args:
        args (dict)
            Dictionary of argument aliases and options to be consumed by ArgumentParser.
    Returns:
        (ArgumentParser) Configured instance of ArgumentParser.
    """
    parser = argparse.ArgumentParser()
    arg_groups: Dict[str, Any] = {}
    for aliases, arg_data in args.items():
        holder: Any = parser
        if "group" in arg_data:
            arg_groups.setdefault(arg_data["group"], parser.add_argument_group(arg_data["group"]))
            holder = arg_groups[arg_data["group"]]
        action = arg_data.get("action")
        if not action and arg_data["type"] == bool:
            action = "store_true"
        kwargs = {
            "help": arg_data.get("help"),
            "required": arg_data.get("required", False),
            "default": arg_data.get("default"),
        }
        if action:
            kwargs["action"] = action
            if action == "append":
                kwargs["type"] = arg_data.get("type", str)
        else:
            kwargs["type"] = arg_data.get("type", str)
            kwargs["nargs"] = arg_data.get("count")

        holder.add_argument(*aliases, **kwargs)

    return parser


def add_args_env_variables(
    parsed_args: argparse.Namespace, args: Dict[Any, Any]
) -> argparse.Namespace:
    """
    Add argument values from environment variables.

    Args:
        parsed_args ():
            Parsed arguments object.
        args (dict):
            Argument definition.
    Returns:
        Modified parsed arguments object.
    """
    for aliases, arg_data in args.items():
        named_alias = [x.lstrip("-").replace("-", "_") for x in aliases if x.startswith("--")][0]
        if arg_data.get("env_variable"):
            if not getattr(parsed_args, named_alias) and os.environ.get(arg_data["env_variable"]):
                setattr(parsed_args, named_alias, os.environ.get(arg_data["env_variable"]))
    return parsed_args


def task_status(event: str) -> Dict[str, Dict[str, str]]:
    """Helper function. Expand as necessary."""  # noqa: D401
    return dict(event={"type": event})


def log_step(step_name: str) -> Callable[[Any], Any]:
    """
    Log status for methods which constitute an entire task step.

    Args:
        step_name (str):
            Name of the task step, e.g., "Build manifest list".
    """
    event_name = step_name.lower().replace(" ", "-")

    def decorate(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def fn_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                LOG.info("%s: Started", step_name, extra=task_status("%s-start" % event_name))
                ret = fn(*args, **kwargs)
                LOG.info("%s: Finished", step_name, extra=task_status("%s-end" % event_name))
                return ret
            except Exception:
                LOG.error("%s: Failed", step_name, extra=task_status("%s-error" % event_name))
                raise

        return fn_wrapper

    return decorate


def run_in_parallel(
    func: Callable[..., Any], data: List[Any], threads: int = 10
) -> Dict[int, Any]:
    """Run function on every data entry in parallel.

    The first failure cancels the entries which haven't started yet and is re-raised.

    Args:
        func (function): Function to run on data
        data (list): Arguments for the function, one entry per call
    Returns:
        dict: Results keyed by the index of their data entry, in the same order as data.
    """
    results = {}
    with ThreadPoolExecutor(max_workers=threads) as executor:
        future_results = {executor.submit(func, data_entry): n for n, data_entry in enumerate(data)}
        for future in futures.as_completed(future_results):
            if future.exception() is not None:
                for pending in future_results:
                    pending.cancel()
                raise cast(BaseException, future.exception())
            results[future_results[future]] = future.result()
    return dict(sorted(results.items(), key=lambda kv: kv[0]))


def is_digest(reference: str) -> bool:
    """Check whether the reference part of an image is a digest."""
    return bool(_DIGEST_RE.match(reference))


def parse_image_reference(image: str) -> ImageReference:
    """
    Split an image into registry, repository and reference (tag or digest), validating each part.

    Images without a registry hostname are Docker Hub images, single-component Docker Hub
    repositories live in the 'library' namespace.

    Args:
        image (str):
            Image such as 'quay.io/namespace/image:1' or 'namespace/image@sha256:...'.
    Returns (ImageReference):
        Registry hostname, repository and tag or digest.
    Raises:
        ReferenceParseError:
            If image doesn't contain the expected data.
    """
    if not image or image != image.strip():
        raise ReferenceParseError("Invalid image reference '{0}'".format(image))

    if "@" in image:
        name, ref = image.split("@", 1)
        if not is_digest(ref):
            raise ReferenceParseError("Invalid digest '{0}' in image '{1}'".format(ref, image))
        # A tag next to a digest is informational only
        last_slash = name.rfind("/")
        if ":" in name[last_slash + 1 :]:  # noqa: E203
            name = name[: name.rfind(":")]
    else:
        last_slash = image.rfind("/")
        if ":" not in image[last_slash + 1 :]:  # noqa: E203
            raise ReferenceParseError(
                "Neither tag nor digest were found in the image '{0}'".format(image)
            )
        name, ref = image.rsplit(":", 1)
        if not _TAG_RE.match(ref):
            raise ReferenceParseError("Invalid tag '{0}' in image '{1}'".format(ref, image))

    parts = name.split("/")
    if len(parts) > 1 and ("." in parts[0] or ":" in parts[0] or parts[0] == "localhost"):
        registry = parts[0]
        repo_parts = parts[1:]
    else:
        registry = DOCKER_HUB_REGISTRY
        repo_parts = parts

    if registry in DOCKER_HUB_ALIASES:
        registry = DOCKER_HUB_REGISTRY
        if len(repo_parts) == 1:
            repo_parts = ["library"] + repo_parts

    for component in repo_parts:
        if not _PATH_COMPONENT_RE.match(component):
            raise ReferenceParseError(
                "Invalid repository component '{0}' in image '{1}'".format(component, image)
            )

    return ImageReference(registry, "/".join(repo_parts), ref)


def registry_api_url(registry: str) -> str:
    """
    Get base URL of the registry's HTTP API.

    Args:
        registry (str):
            Registry hostname as it appears in image references.
    Returns (str):
        Base URL (scheme and host) where the registry API is served.
    """
    if registry == DOCKER_HUB_REGISTRY:
        return "https://{0}".format(DOCKER_HUB_API_HOST)
    if registry.split(":")[0] in ("localhost", "127.0.0.1"):
        return "http://{0}".format(registry)
    return "https://{0}".format(registry)
