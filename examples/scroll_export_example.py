"""Scroll 导出使用示例.

本文件展示了如何使用 ElasticStreamClient 将索引中的全部文档导出到 JSON Lines 文件。
"""

import json
import logging

from elasticstream import ClientConfig, ElasticStreamClient

logging.basicConfig(level=logging.INFO)

config = ClientConfig(
    url="http://localhost:9200",
    username="elastic",
    password="changeme",
)


def export_index(index_name: str, output_path: str) -> None:
    """导出索引全部文档."""
    with open(output_path, "w", encoding="utf-8") as output, ElasticStreamClient(
        config
    ) as client:

        def handle_page(page: bytes) -> None:
            # 每页是一次 scroll 响应的原始字节
            for hit in json.loads(page)["hits"]["hits"]:
                output.write(json.dumps(hit["_source"], ensure_ascii=False) + "\n")

        stats = client.scroll_all_documents(
            index_name,
            {"query": {"match_all": {}}, "sort": ["_doc"]},
            handle_page,
        )

    print(f"导出完成: 页数 {stats.pages}, 文档数 {stats.hits}")


if __name__ == "__main__":
    export_index("users", "users.jsonl")
