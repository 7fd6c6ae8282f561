"""Shared fixtures and record factories for the test suite."""
import pytest
from pydantic import SecretStr

from devops_core.config import AzureDevOpsConfig, Settings


def identity(name: str) -> dict:
    """An Azure DevOps identity object as the REST API returns it."""
    slug = name.lower().replace(" ", ".")
    return {
        "displayName": name,
        "url": f"https://spsprodeus27.vssps.visualstudio.com/_apis/Identities/{slug}",
        "_links": {"avatar": {"href": f"https://dev.azure.com/contoso/_apis/GraphProfile/MemberAvatars/{slug}"}},
        "id": f"id-{slug}",
        "uniqueName": f"{slug}@contoso.com",
        "imageUrl": f"https://dev.azure.com/contoso/_api/_common/identityImage?id={slug}",
        "descriptor": f"aad.{slug}",
    }


def make_work_item(
    work_item_id: int,
    state: str = "Active",
    work_item_type: str = "User Story",
    title: str = None,
    assigned_to: str = None,
    created_by: str = None,
    changed_by: str = None,
    points=None,
    **extra_fields,
) -> dict:
    """A work item record shaped like a /wit/workitems response entry."""
    fields = {
        "System.Id": work_item_id,
        "System.State": state,
        "System.WorkItemType": work_item_type,
        "System.Title": title if title is not None else f"Work item {work_item_id}",
    }
    if assigned_to:
        fields["System.AssignedTo"] = identity(assigned_to)
    if created_by:
        fields["System.CreatedBy"] = identity(created_by)
    if changed_by:
        fields["System.ChangedBy"] = identity(changed_by)
    if points is not None:
        fields["Microsoft.VSTS.Scheduling.StoryPoints"] = points
    fields.update(extra_fields)

    return {
        "id": work_item_id,
        "rev": 1,
        "fields": fields,
        "_links": {"self": {"href": f"https://dev.azure.com/contoso/_apis/wit/workItems/{work_item_id}"}},
        "url": f"https://dev.azure.com/contoso/_apis/wit/workItems/{work_item_id}",
    }


@pytest.fixture
def settings():
    """Settings with defaults only, isolated from the environment and .env files."""
    return Settings(_env_file=None)


@pytest.fixture
def azure_config():
    return AzureDevOpsConfig(
        organization_url="https://dev.azure.com/contoso",
        project="Fabrikam",
        pat=SecretStr("supersecretpat123"),
    )
