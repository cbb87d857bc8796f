"""连接管理异常定义模块."""

from ..exceptions import ElasticStreamError


class ClientConnectionError(ElasticStreamError):
    """客户端构建异常.

    当底层 ES 客户端无法创建时抛出（例如地址格式非法），
    对调用方是致命错误，内部不会重试。
    """

    pass


class ConnectionConfigError(ClientConnectionError):
    """连接配置校验异常.

    当连接配置参数不合法时抛出，例如 url 为空、max_retries 小于 0 等。
    """

    pass
