"""
Subgraph 레코드 스키마 (Pydantic)

검증 대상 레코드 파싱. BigInt 문자열은 int로 변환됨.
필드명은 snake_case, 입력은 Subgraph의 camelCase alias 사용.
"""

from pydantic import BaseModel, Field


class EntityRef(BaseModel):
    """다른 Entity 참조 ({id: ...})"""

    id: str

    model_config = {"frozen": True}


class SubgraphRecord(BaseModel):
    """페이지 쿼리 레코드 공통 필드"""

    id: str
    created_at_timestamp: int = Field(..., alias="createdAtTimestamp")

    model_config = {"frozen": True, "populate_by_name": True}


class StreamRecord(SubgraphRecord):
    """현재 스트림 (flow rate > 0)"""

    updated_at_timestamp: int = Field(..., alias="updatedAtTimestamp")
    current_flow_rate: int = Field(..., alias="currentFlowRate")
    token: EntityRef
    sender: EntityRef
    receiver: EntityRef


class AccountTokenSnapshotRecord(SubgraphRecord):
    """ATS"""

    total_net_flow_rate: int = Field(..., alias="totalNetFlowRate")
    account: EntityRef
    token: EntityRef


class IndexRecord(SubgraphRecord):
    """IDA Index"""

    index_id: int = Field(..., alias="indexId")
    index_value: int = Field(..., alias="indexValue")
    total_units_approved: int = Field(..., alias="totalUnitsApproved")
    total_units_pending: int = Field(..., alias="totalUnitsPending")
    token: EntityRef
    publisher: EntityRef


class SubscriptionIndexRef(BaseModel):
    """Subscription에 포함된 Index 정보"""

    id: str
    index_id: int = Field(..., alias="indexId")
    index_value: int = Field(..., alias="indexValue")
    token: EntityRef
    publisher: EntityRef

    model_config = {"frozen": True, "populate_by_name": True}


class SubscriptionRecord(SubgraphRecord):
    """IDA Subscription"""

    approved: bool
    units: int
    index_value_until_updated_at: int = Field(..., alias="indexValueUntilUpdatedAt")
    subscriber: EntityRef
    index: SubscriptionIndexRef
