"""AWS resource catalog, default rules and rates."""
from __future__ import annotations

from typing import List

from archforge.providers.catalog import ProviderCatalog, ResourceSpec
from archforge.rules.constraints import (
    ANY_TYPE,
    AllowedParent,
    MaxChildren,
    ReferenceExists,
    RequiresParent,
    RequiresRegion,
)
from archforge.rules.types import Rule, Severity

PROVIDER = "aws"

# On-demand us-east-1 hourly rates, used for rough estimates only.
_EC2_RATES = {
    "t3.nano": 0.0052,
    "t3.micro": 0.0104,
    "t3.small": 0.0208,
    "t3.medium": 0.0416,
    "t3.large": 0.0832,
    "m5.large": 0.096,
    "m5.xlarge": 0.192,
    "c5.large": 0.085,
    "r5.large": 0.126,
}

_RDS_RATES = {
    "db.t3.micro": 0.017,
    "db.t3.small": 0.034,
    "db.t3.medium": 0.068,
    "db.m5.large": 0.171,
    "db.r5.large": 0.24,
}

SPECS = (
    ResourceSpec(
        "vpc",
        "networking",
        "aws_vpc",
        "aws.ec2.Vpc",
        renames={"cidr": "cidr_block"},
    ),
    ResourceSpec(
        "subnet",
        "networking",
        "aws_subnet",
        "aws.ec2.Subnet",
        references={"vpcId": "vpc"},
        parent_attributes={"vpc": "vpc_id"},
        renames={"cidr": "cidr_block", "vpcId": "vpc_id"},
    ),
    ResourceSpec(
        "ec2",
        "compute",
        "aws_instance",
        "aws.ec2.Instance",
        hourly_rate=_EC2_RATES["t3.micro"],
        aliases=("instance", "ec2_instance", "ec2-instance"),
        references={"subnetId": "subnet", "securityGroupIds": "security-group"},
        parent_attributes={"subnet": "subnet_id"},
        renames={"securityGroupIds": "vpc_security_group_ids"},
        size_property="instanceType",
        size_rates=_EC2_RATES,
    ),
    ResourceSpec(
        "security-group",
        "security",
        "aws_security_group",
        "aws.ec2.SecurityGroup",
        aliases=("security_group", "securitygroup"),
        parent_attributes={"vpc": "vpc_id"},
        name_attribute="name",
    ),
    ResourceSpec(
        "route-table",
        "networking",
        "aws_route_table",
        "aws.ec2.RouteTable",
        aliases=("route_table",),
        parent_attributes={"vpc": "vpc_id"},
    ),
    ResourceSpec(
        "internet-gateway",
        "networking",
        "aws_internet_gateway",
        "aws.ec2.InternetGateway",
        aliases=("internet_gateway", "igw"),
        parent_attributes={"vpc": "vpc_id"},
    ),
    ResourceSpec(
        "nat-gateway",
        "networking",
        "aws_nat_gateway",
        "aws.ec2.NatGateway",
        hourly_rate=0.045,
        aliases=("nat_gateway", "nat"),
        references={"allocationId": "elastic-ip"},
        parent_attributes={"subnet": "subnet_id"},
    ),
    ResourceSpec(
        "elastic-ip",
        "networking",
        "aws_eip",
        "aws.ec2.Eip",
        hourly_rate=0.005,
        aliases=("elastic_ip", "eip"),
    ),
    ResourceSpec(
        "lambda",
        "compute",
        "aws_lambda_function",
        "aws.lambda_.Function",
        aliases=("lambda_function",),
        name_attribute="function_name",
    ),
    ResourceSpec(
        "s3",
        "storage",
        "aws_s3_bucket",
        "aws.s3.BucketV2",
        aliases=("s3_bucket", "bucket"),
    ),
    ResourceSpec(
        "rds",
        "database",
        "aws_db_instance",
        "aws.rds.Instance",
        hourly_rate=_RDS_RATES["db.t3.micro"],
        aliases=("rds_instance", "database"),
        renames={"multiAz": "multi_az"},
        name_attribute="identifier",
        size_property="instanceClass",
        size_rates=_RDS_RATES,
    ),
    ResourceSpec(
        "dynamodb",
        "database",
        "aws_dynamodb_table",
        "aws.dynamodb.Table",
        aliases=("dynamodb_table",),
        name_attribute="name",
    ),
    ResourceSpec(
        "load-balancer",
        "networking",
        "aws_lb",
        "aws.lb.LoadBalancer",
        hourly_rate=0.0225,
        aliases=("load_balancer", "alb", "elb"),
        name_attribute="name",
    ),
    ResourceSpec(
        "target-group",
        "networking",
        "aws_lb_target_group",
        "aws.lb.TargetGroup",
        aliases=("target_group",),
        parent_attributes={"vpc": "vpc_id"},
        name_attribute="name",
    ),
    ResourceSpec(
        "listener",
        "networking",
        "aws_lb_listener",
        "aws.lb.Listener",
        aliases=("lb_listener",),
        references={"loadBalancerId": "load-balancer", "targetGroupId": "target-group"},
        parent_attributes={"load-balancer": "load_balancer_arn"},
        renames={"loadBalancerId": "load_balancer_arn", "targetGroupId": "default_target_group_arn"},
        taggable=False,
    ),
    ResourceSpec(
        "auto-scaling-group",
        "compute",
        "aws_autoscaling_group",
        "aws.autoscaling.Group",
        aliases=("auto_scaling_group", "asg"),
        name_attribute="name",
        taggable=False,
    ),
    ResourceSpec(
        "ebs",
        "storage",
        "aws_ebs_volume",
        "aws.ebs.Volume",
        aliases=("ebs_volume",),
    ),
)


def default_rules() -> List[Rule]:
    return [
        RequiresRegion(ANY_TYPE),
        RequiresParent("subnet", ("vpc",)),
        RequiresParent("nat-gateway", ("subnet",)),
        AllowedParent("ec2", ("subnet",)),
        AllowedParent("security-group", ("vpc",)),
        AllowedParent("rds", ("subnet", "vpc")),
        AllowedParent("listener", ("load-balancer",)),
        MaxChildren("vpc", 1, "internet-gateway"),
        ReferenceExists("ec2", property_name="subnetId", target_type="subnet"),
        ReferenceExists("ec2", property_name="securityGroupIds", target_type="security-group"),
        ReferenceExists("subnet", property_name="vpcId", target_type="vpc"),
        ReferenceExists("nat-gateway", property_name="allocationId", target_type="elastic-ip"),
        ReferenceExists("listener", property_name="targetGroupId", target_type="target-group", required=True),
        ReferenceExists("listener", property_name="loadBalancerId", target_type="load-balancer"),
        MaxChildren("load-balancer", 50, "listener", severity=Severity.WARNING),
    ]


def build_catalog() -> ProviderCatalog:
    catalog = ProviderCatalog(
        name=PROVIDER,
        terraform_source="hashicorp/aws",
        terraform_version="~> 5.0",
        pulumi_package="pulumi-aws>=6.0.0,<7.0.0",
        pulumi_module="pulumi_aws",
        rule_factory=default_rules,
    )
    for spec in SPECS:
        catalog.add(spec)
    return catalog
