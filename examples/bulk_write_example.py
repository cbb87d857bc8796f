"""批量写入使用示例.

本文件展示了如何区分整个批次失败（TransportError）与部分文档失败（BulkItemError）。
"""

from elasticstream import (
    BulkAction,
    BulkItemError,
    BulkOperation,
    ClientConfig,
    ElasticStreamClient,
    TransportError,
    encode_bulk_payload,
)

client = ElasticStreamClient(ClientConfig(url="http://localhost:9200"))

documents = [
    {"id": "1", "name": "张三", "age": 25, "city": "北京"},
    {"id": "2", "name": "李四", "age": 30, "city": "上海"},
    {"id": "3", "name": "王五", "age": "未知", "city": "广州"},
]

payload = encode_bulk_payload(
    BulkOperation(action=BulkAction.INDEX, doc_id=doc["id"], source=doc)
    for doc in documents
)

try:
    result = client.bulk_write(payload, "users")
    print(f"全部成功: {result.success}")
except BulkItemError as e:
    # 服务端接受了批次，但部分文档被拒绝
    print(f"部分失败:\n{e.result.get_error_summary()}")
    failed_ids = [item.doc_id for item in e.items]
    print(f"可以只重试这些文档: {failed_ids}")
except TransportError as e:
    # 整个批次未能写入
    print(f"批次写入失败, status={e.status}: {e}")
finally:
    client.close()
