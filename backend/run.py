#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
CMS 后端服务启动脚本

使用方法：
1. 启动开发服务器：python run.py
2. 使用gunicorn部署：gunicorn -w 4 -b 0.0.0.0:3000 "run:app"

注意：
- 开发模式下使用Flask内置服务器
- 配置了 REDIS_URL 时启动前检查 Redis (限流计数存储)，失败只记录警告
"""

# backend/run.py
import os
import time
import logging

import redis
from dotenv import load_dotenv

from cmsapp import create_app

logger = logging.getLogger(__name__)

# 创建Flask应用实例 - 为gunicorn提供
app = create_app()


# 测试Redis连接
def test_redis_connection(redis_url):
    try:
        logger.info(f"尝试连接Redis: {redis_url}")
        client = redis.from_url(redis_url)
        test_key = f"redis_test_{time.time()}"
        client.set(test_key, "测试连接成功", ex=10)
        value = client.get(test_key)
        client.delete(test_key)

        if value:
            logger.info(f"Redis连接测试成功: {value.decode('utf-8')}")
            return True
        logger.error("Redis连接测试失败: 无法写入或读取测试键")
        return False
    except redis.RedisError as e:
        logger.error(f"Redis连接测试失败: {e}")
        return False


# 直接运行此脚本时启动Flask开发服务器
if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    # 加载.env中的环境变量
    load_dotenv()

    redis_url = os.getenv('REDIS_URL')
    if redis_url and not test_redis_connection(redis_url):
        logger.warning("Redis连接测试失败，但将继续启动应用")

    app_host = os.getenv('API_HOST', '0.0.0.0')
    app_port = int(os.getenv('API_PORT', 3000))
    app_debug = os.getenv('API_DEBUG', 'False').lower() == 'true'

    # 打印应用配置信息
    logger.info(f"应用配置: HOST={app_host}, PORT={app_port}, DEBUG={app_debug}")

    app.run(host=app_host, port=app_port, debug=app_debug)
