"""Normalization of EC2 security groups into policy input documents."""

from __future__ import annotations

from dataclasses import dataclass, field

from aws_netsec_compliance.domain.evidence import (
    Component,
    InventoryItem,
    Link,
    OriginActor,
    Property,
    SubjectReference,
    SubjectType,
)
from aws_netsec_compliance.domain.labels import (
    LABEL_GROUP_ID,
    LABEL_PROVIDER,
    LABEL_SERVICE,
    LABEL_TYPE,
    LABEL_VPC_ID,
)

RESOURCE_TYPE = "security-group"
SECURITY_GROUP_COMPONENT_ID = "common-components/amazon-security-group"

# Fields forwarded to the policy evaluator, in document order.
_DOCUMENT_FIELDS = (
    "GroupId",
    "GroupName",
    "Description",
    "VpcId",
    "OwnerId",
    "IpPermissions",
    "IpPermissionsEgress",
    "Tags",
)

SECURITY_GROUP_COMPONENT = Component(
    identifier=SECURITY_GROUP_COMPONENT_ID,
    type="service",
    title="Amazon Security Groups",
    description=(
        "Amazon Security Groups are stateful virtual firewalls for AWS resources such as "
        "EC2 instances and RDS databases. Inbound and outbound rules match on protocol, "
        "port range, CIDR block or peer security group."
    ),
    purpose=(
        "Enforce network segmentation and least-privilege access at the resource level "
        "with an auditable, configurable boundary."
    ),
)

ORIGIN_ACTORS = (
    OriginActor(
        title="The Continuous Compliance Framework",
        type="assessment-platform",
        links=(
            Link(
                href="https://compliance-framework.github.io/docs/",
                rel="reference",
                text="The Continuous Compliance Framework",
            ),
        ),
    ),
    OriginActor(
        title="AWS Network Security Evaluator",
        type="tool",
        links=(
            Link(
                href="https://github.com/compliance-framework/plugin-aws-networking-security",
                rel="reference",
                text="AWS networking security plugin",
            ),
        ),
    ),
)


@dataclass(frozen=True)
class ResourceContext:
    """Descriptive records attached to every artifact about one resource."""

    inventory_item: InventoryItem
    component: Component = SECURITY_GROUP_COMPONENT
    subjects: tuple[SubjectReference, ...] = ()
    origins: tuple[OriginActor, ...] = ORIGIN_ACTORS


@dataclass(frozen=True)
class NormalizedResource:
    resource_id: str
    document: dict[str, object]
    labels: dict[str, str]
    context: ResourceContext = field(repr=False)

    @property
    def resource_type(self) -> str:
        return self.labels[LABEL_TYPE]


def inventory_identifier(group_id: str) -> str:
    return f"aws-security-group/{group_id}"


def normalize_security_group(group: dict[str, object]) -> NormalizedResource:
    """Build the policy input document, base labels and context for a group.

    Only present fields are copied; nothing is defaulted.
    """
    group_id = group.get("GroupId")
    if not isinstance(group_id, str) or not group_id:
        raise ValueError("Security group is missing a GroupId")

    document = {key: group[key] for key in _DOCUMENT_FIELDS if group.get(key) is not None}

    labels = {
        LABEL_PROVIDER: "aws",
        LABEL_SERVICE: "ec2",
        LABEL_TYPE: RESOURCE_TYPE,
        LABEL_GROUP_ID: group_id,
    }
    vpc_id = group.get("VpcId")
    if isinstance(vpc_id, str) and vpc_id:
        labels[LABEL_VPC_ID] = vpc_id

    return NormalizedResource(
        resource_id=group_id,
        document=document,
        labels=labels,
        context=_build_context(group_id, group),
    )


def _build_context(group_id: str, group: dict[str, object]) -> ResourceContext:
    props = [Property(name="group-id", value=group_id)]
    for name, key in (("group-name", "GroupName"), ("vpc-id", "VpcId")):
        value = group.get(key)
        if isinstance(value, str) and value:
            props.append(Property(name=name, value=value))

    identifier = inventory_identifier(group_id)
    item = InventoryItem(
        identifier=identifier,
        type="firewall",
        title=f"Amazon Security Group [{group_id}]",
        props=tuple(props),
        implemented_components=(SECURITY_GROUP_COMPONENT_ID,),
    )
    subjects = (
        SubjectReference(type=SubjectType.COMPONENT, identifier=SECURITY_GROUP_COMPONENT_ID),
        SubjectReference(type=SubjectType.INVENTORY_ITEM, identifier=identifier),
    )
    return ResourceContext(inventory_item=item, subjects=subjects)
