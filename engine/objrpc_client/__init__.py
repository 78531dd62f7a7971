"""objrpc_client — async Python client for object RPC endpoints."""

from objrpc_client.client import NO_PARAM, ObjRpcClient, RemoteMethod, RemoteObject, RpcError

__all__ = ["NO_PARAM", "ObjRpcClient", "RemoteMethod", "RemoteObject", "RpcError"]
