import sys
from typing import List

from pubtools.pluggy import hookspec, pm

# Define hooks here for any events which may be of interest for any other
# projects using the manifest index builder.


@hookspec
def manifest_index_published(dest_ref: str, digest: str, source_refs: List[str]) -> None:
    """Invoked after a manifest index has been published to a registry.

    :param dest_ref: Image reference the index was published to.
    :type dest_ref: str
    :param digest: Digest of the published index.
    :type digest: str
    :param source_refs: References of the images in the index, in index order.
    :type source_refs: list[str]
    """


pm.add_hookspecs(sys.modules[__name__])
