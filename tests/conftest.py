import base64
import json

import pytest

from pubtools.pluggy import pm

from manifest_index.models import SourceImage

from .fake_registry_client import FakeRegistryClient

# Manifests are not in a canonical JSON form, digests cover the bytes as served.
ARM_MANIFEST = (
    json.dumps(
        {
            "schemaVersion": 2,
            "mediaType": "application/vnd.oci.image.manifest.v1+json",
            "config": {
                "mediaType": "application/vnd.oci.image.config.v1+json",
                "size": 1469,
                "digest": "sha256:" + "a" * 64,
            },
            "layers": [
                {
                    "mediaType": "application/vnd.oci.image.layer.v1.tar+gzip",
                    "size": 3370706,
                    "digest": "sha256:" + "b" * 64,
                }
            ],
        },
        indent=3,
    )
    + "\n"
).encode("utf-8")

X86_MANIFEST = json.dumps(
    {
        "schemaVersion": 2,
        "mediaType": "application/vnd.oci.image.manifest.v1+json",
        "config": {
            "mediaType": "application/vnd.oci.image.config.v1+json",
            "size": 1472,
            "digest": "sha256:" + "c" * 64,
        },
        "layers": [
            {
                "mediaType": "application/vnd.oci.image.layer.v1.tar+gzip",
                "size": 3408729,
                "digest": "sha256:" + "d" * 64,
            }
        ],
    }
).encode("utf-8")

PPC_MANIFEST = json.dumps(
    {
        "schemaVersion": 2,
        "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
        "config": {
            "mediaType": "application/vnd.docker.container.image.v1+json",
            "size": 1500,
            "digest": "sha256:" + "e" * 64,
        },
        "layers": [],
    },
    sort_keys=True,
).encode("utf-8")


@pytest.fixture
def hookspy():
    # Yields a list which receives a (name, kwargs) tuple
    # every time a pubtools hook is invoked.
    hooks = []

    def record_hook(hook_name, _hook_impls, kwargs):
        hooks.append((hook_name, kwargs))

    def do_nothing(*args, **kwargs):
        pass

    undo = pm.add_hookcall_monitoring(before=record_hook, after=do_nothing)
    yield hooks
    undo()


@pytest.fixture
def source_images():
    return [
        SourceImage("quay.io/ns/app:arm", architecture="arm64", os="linux"),
        SourceImage("quay.io/ns/app:x86", architecture="amd64", os="linux"),
    ]


@pytest.fixture
def fake_registry_client():
    client = FakeRegistryClient()
    client.f_add_manifest("quay.io/ns/app:arm", ARM_MANIFEST)
    client.f_add_manifest("quay.io/ns/app:x86", X86_MANIFEST)
    client.f_add_manifest("quay.io/ns/app:ppc", PPC_MANIFEST)
    return client


@pytest.fixture
def auth_file(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text(
        json.dumps(
            {
                "auths": {
                    "quay.io": {"auth": base64.b64encode(b"quay-user:quay:pass").decode()},
                    "https://index.docker.io/v1/": {
                        "auth": base64.b64encode(b"hub-user:hub-pass").decode()
                    },
                }
            }
        )
    )
    return str(path)
