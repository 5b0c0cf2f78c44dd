"""
Subgraph GraphQL 쿼리

모든 페이지 쿼리는 같은 변수 집합을 받음:
    blockNumber: 스냅샷 블록 (모든 페이지 고정)
    first: 페이지 크기
    createdAt: 커서 (createdAtTimestamp_gte)

결과는 항상 response 필드로 alias.

*_AT_TIMESTAMP 쿼리는 한 createdAtTimestamp 안에서 id 순으로 페이지를 넘김
(페이지 크기보다 많은 레코드가 같은 timestamp를 가질 때 사용):
    createdAt: 고정 timestamp (createdAtTimestamp 일치)
    lastId: 이전 페이지 마지막 id (id_gt)
"""

GET_META = """
    query {
        _meta {
            block {
                number
            }
        }
    }
"""

# flow rate > 0 인 현재 스트림
GET_CURRENT_STREAMS = """
    query getCurrentStreams($blockNumber: Int!, $first: Int!, $createdAt: BigInt!) {
        response: streams(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp_gte: $createdAt, currentFlowRate_gt: 0 }
            orderBy: createdAtTimestamp
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            updatedAtTimestamp
            currentFlowRate
            token {
                id
            }
            sender {
                id
            }
            receiver {
                id
            }
        }
    }
"""

GET_ACCOUNT_TOKEN_SNAPSHOTS = """
    query getAccountTokenSnapshots($blockNumber: Int!, $first: Int!, $createdAt: BigInt!) {
        response: accountTokenSnapshots(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp_gte: $createdAt }
            orderBy: createdAtTimestamp
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            totalNetFlowRate
            account {
                id
            }
            token {
                id
            }
        }
    }
"""

GET_INDEXES = """
    query getIndexes($blockNumber: Int!, $first: Int!, $createdAt: BigInt!) {
        response: indexes(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp_gte: $createdAt }
            orderBy: createdAtTimestamp
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            indexId
            indexValue
            totalUnitsApproved
            totalUnitsPending
            token {
                id
            }
            publisher {
                id
            }
        }
    }
"""

GET_SUBSCRIPTIONS = """
    query getSubscriptions($blockNumber: Int!, $first: Int!, $createdAt: BigInt!) {
        response: indexSubscriptions(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp_gte: $createdAt }
            orderBy: createdAtTimestamp
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            approved
            units
            indexValueUntilUpdatedAt
            subscriber {
                id
            }
            index {
                id
                indexId
                indexValue
                token {
                    id
                }
                publisher {
                    id
                }
            }
        }
    }
"""

GET_CURRENT_STREAMS_AT_TIMESTAMP = """
    query getCurrentStreamsAtTimestamp(
        $blockNumber: Int!, $first: Int!, $createdAt: BigInt!, $lastId: ID!
    ) {
        response: streams(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp: $createdAt, id_gt: $lastId, currentFlowRate_gt: 0 }
            orderBy: id
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            updatedAtTimestamp
            currentFlowRate
            token {
                id
            }
            sender {
                id
            }
            receiver {
                id
            }
        }
    }
"""

GET_ACCOUNT_TOKEN_SNAPSHOTS_AT_TIMESTAMP = """
    query getAccountTokenSnapshotsAtTimestamp(
        $blockNumber: Int!, $first: Int!, $createdAt: BigInt!, $lastId: ID!
    ) {
        response: accountTokenSnapshots(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp: $createdAt, id_gt: $lastId }
            orderBy: id
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            totalNetFlowRate
            account {
                id
            }
            token {
                id
            }
        }
    }
"""

GET_INDEXES_AT_TIMESTAMP = """
    query getIndexesAtTimestamp(
        $blockNumber: Int!, $first: Int!, $createdAt: BigInt!, $lastId: ID!
    ) {
        response: indexes(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp: $createdAt, id_gt: $lastId }
            orderBy: id
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            indexId
            indexValue
            totalUnitsApproved
            totalUnitsPending
            token {
                id
            }
            publisher {
                id
            }
        }
    }
"""

GET_SUBSCRIPTIONS_AT_TIMESTAMP = """
    query getSubscriptionsAtTimestamp(
        $blockNumber: Int!, $first: Int!, $createdAt: BigInt!, $lastId: ID!
    ) {
        response: indexSubscriptions(
            block: { number: $blockNumber }
            first: $first
            where: { createdAtTimestamp: $createdAt, id_gt: $lastId }
            orderBy: id
            orderDirection: asc
        ) {
            id
            createdAtTimestamp
            approved
            units
            indexValueUntilUpdatedAt
            subscriber {
                id
            }
            index {
                id
                indexId
                indexValue
                token {
                    id
                }
                publisher {
                    id
                }
            }
        }
    }
"""

# 페이지 쿼리 → 같은 timestamp 안에서 id로 넘기는 쿼리
TIEBREAK_QUERIES: dict[str, str] = {
    GET_CURRENT_STREAMS: GET_CURRENT_STREAMS_AT_TIMESTAMP,
    GET_ACCOUNT_TOKEN_SNAPSHOTS: GET_ACCOUNT_TOKEN_SNAPSHOTS_AT_TIMESTAMP,
    GET_INDEXES: GET_INDEXES_AT_TIMESTAMP,
    GET_SUBSCRIPTIONS: GET_SUBSCRIPTIONS_AT_TIMESTAMP,
}
