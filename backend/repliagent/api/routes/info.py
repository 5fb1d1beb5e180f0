from fastapi import APIRouter, Depends, HTTPException, Request

from repliagent.errors import AgentError, format_error_chain
from repliagent.models.node import Node, ShardsInfo, StoreExtras
from repliagent.services.node_info import MongoInfo

router = APIRouter()


def get_mongo_info(request: Request) -> MongoInfo:
    """Node information service created at application startup"""
    return request.app.state.mongo_info


@router.get("/node")
async def get_node_info(info: MongoInfo = Depends(get_mongo_info)) -> Node:
    """Get identity, health and store version of the node"""
    try:
        return await info.node_info()
    except AgentError as e:
        raise HTTPException(status_code=500, detail=format_error_chain(e))


@router.get("/shards")
async def get_shards(info: MongoInfo = Depends(get_mongo_info)) -> ShardsInfo:
    """Get the shards held by the node"""
    try:
        return await info.shards()
    except AgentError as e:
        raise HTTPException(status_code=500, detail=format_error_chain(e))


@router.get("/store")
async def get_store_info(info: MongoInfo = Depends(get_mongo_info)) -> StoreExtras:
    """Get store specific information"""
    try:
        return await info.store_info()
    except AgentError as e:
        raise HTTPException(status_code=500, detail=format_error_chain(e))
