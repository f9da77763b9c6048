"""FastAPI dependencies for the verification endpoints."""

from typing import Annotated

from fastapi import Depends

from synthrights.modules.certificates.dependencies import (
    AnchorDep,
    OptionalSignerDep,
    RepositoryDep,
    SettingsDep,
)
from synthrights.modules.verification.resolver import VerificationResolver


def get_resolver(
    repository: RepositoryDep,
    anchor: AnchorDep,
    signer: OptionalSignerDep,
    settings: SettingsDep,
) -> VerificationResolver:
    return VerificationResolver(repository, anchor, signer, settings=settings)


ResolverDep = Annotated[VerificationResolver, Depends(get_resolver)]
