import logging
from typing import Any, Dict, List, Optional

from pubtools.pluggy import pm, task_context

from . import hooks  # noqa: F401
from .credentials import load_auth_file, resolve_credential
from .index_builder import build_and_publish
from .models import AuthCredential, SourceImage
from .utils.misc import add_args_env_variables, is_digest, parse_image_reference, setup_arg_parser

LOG = logging.getLogger("manifest_index")

BUILD_INDEX_ARGS = {
    ("--source",): {
        "help": "Source image with its platform, as '<reference>=<os>/<arch>[/<variant>]'. "
        "Multiple can be specified, the manifest list keeps their order.",
        "required": True,
        "type": str,
        "action": "append",
    },
    ("--dest-ref",): {
        "help": "Destination image reference. Must be specified by tag. The manifest list will be "
        "uploaded to this image reference, replacing whatever it currently points to.",
        "required": True,
        "type": str,
    },
    ("--auth-file",): {
        "help": "Path to a container auth file holding the registry credentials. "
        "Can be specified by env variable REGISTRY_AUTH_FILE.",
        "required": False,
        "type": str,
        "env_variable": "REGISTRY_AUTH_FILE",
    },
    ("--registry-user",): {
        "help": "Registry username. Takes precedence over the auth file.",
        "required": False,
        "type": str,
    },
    ("--registry-password",): {
        "help": "Registry password. Can be specified by env variable REGISTRY_PASSWORD.",
        "required": False,
        "type": str,
        "env_variable": "REGISTRY_PASSWORD",
    },
    ("--concurrency",): {
        "help": "Number of source manifests fetched at the same time.",
        "required": False,
        "type": int,
        "default": 1,
    },
    ("--verbose",): {
        "help": "Log debug messages.",
        "required": False,
        "type": bool,
    },
}


def verify_build_index_args(args: Any) -> None:
    """Verify the presence and correctness of input parameters."""
    if is_digest(parse_image_reference(args.dest_ref).reference):
        raise ValueError("Destination must be specified via tag, not digest")

    if bool(args.registry_user) != bool(args.registry_password):
        raise ValueError(
            "Both registry user and password must be present when attempting to log in."
        )

    if args.concurrency < 1:
        raise ValueError("Concurrency must be at least 1")


def get_credential(
    dest_ref: str,
    registry_user: Optional[str] = None,
    registry_password: Optional[str] = None,
    auth_file: Optional[str] = None,
) -> AuthCredential:
    """
    Get credentials for the registry of the destination image.

    Args:
        dest_ref (str):
            Destination image reference.
        registry_user (str):
            Explicit registry username.
        registry_password (str):
            Explicit registry password.
        auth_file (str):
            Auth file to read the credentials from if they weren't given explicitly.
    Returns (AuthCredential):
        Registry credentials.
    """
    if registry_user and registry_password:
        return AuthCredential(username=registry_user, password=registry_password)

    registry = parse_image_reference(dest_ref).registry
    LOG.info("Looking up credentials of registry '{0}'".format(registry))
    return resolve_credential(load_auth_file(auth_file), registry)


def build_index(
    sources: List[str],
    dest_ref: str,
    auth_file: Optional[str] = None,
    registry_user: Optional[str] = None,
    registry_password: Optional[str] = None,
    concurrency: int = 1,
) -> str:
    """
    Build a manifest list out of source images and publish it to the destination.

    Args:
        sources ([str]):
            Source images in the '<reference>=<os>/<arch>[/<variant>]' notation.
        dest_ref (str):
            Destination image reference.
        auth_file (str):
            Path to a container auth file.
        registry_user (str):
            Registry username.
        registry_password (str):
            Registry password.
        concurrency (int):
            Number of manifests fetched at the same time.
    Returns (str):
        Digest of the published manifest list.
    """
    source_images = [SourceImage.from_string(source) for source in sources]
    credential = get_credential(dest_ref, registry_user, registry_password, auth_file)

    digest = build_and_publish(source_images, dest_ref, credential, concurrency=concurrency)
    pm.hook.manifest_index_published(
        dest_ref=dest_ref, digest=digest, source_refs=[i.reference for i in source_images]
    )
    return digest


def setup_args() -> Any:
    """Set up argparser of the manifest index build entrypoint."""
    return setup_arg_parser(BUILD_INDEX_ARGS)


def build_index_main(sysargs: Optional[List[str]] = None) -> None:
    """Entrypoint for manifest list building."""
    parser = setup_args()
    if sysargs:
        args = parser.parse_args(sysargs[1:])
    else:
        args = parser.parse_args()  # pragma: no cover
    args = add_args_env_variables(args, BUILD_INDEX_ARGS)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    verify_build_index_args(args)

    kwargs: Dict[str, Any] = {
        "sources": args.source,
        "dest_ref": args.dest_ref,
        "auth_file": args.auth_file,
        "registry_user": args.registry_user,
        "registry_password": args.registry_password,
        "concurrency": args.concurrency,
    }
    with task_context():
        digest = build_index(**kwargs)
    print(digest)
