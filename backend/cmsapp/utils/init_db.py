"""
初始化示例数据: 管理员账号、基础分类和两篇已发布的示例文章。

每一步在已有数据时跳过，可以重复执行。通过 `flask seed` 命令调用；
`flask seed --create-tables` 会先执行 db.create_all() (未使用迁移的开发环境)。
"""
from datetime import datetime, timedelta

import click
from flask import current_app

from cmsapp import db
from cmsapp.models import User, Category, Post, ROLE_ADMIN, STATUS_PUBLISHED
from cmsapp.services.post_service import make_excerpt
from cmsapp.utils.slug_generator import slugify

SEED_CATEGORIES = [
    {"name": "Technology", "description": "Latest tech trends and innovations", "color": "#3B82F6"},
    {"name": "Lifestyle", "description": "Tips for better living", "color": "#10B981"},
    {"name": "Business", "description": "Business insights and strategies", "color": "#F59E0B"},
    {"name": "Health", "description": "Health and wellness topics", "color": "#EF4444"},
]

WELCOME_CONTENT = """
<h2>Getting Started</h2>
<p>Welcome to your new Content Management System! It gives you a flexible platform for managing posts, categories and media.</p>
<h3>Key Features</h3>
<ul>
  <li>User authentication and role-based access control</li>
  <li>Post and category management</li>
  <li>Media library with file uploads</li>
  <li>Dashboard with analytics</li>
  <li>Search and pagination</li>
  <li>SEO optimization</li>
</ul>
<p>Log in with your admin credentials, create some categories and start writing your first post. Happy blogging!</p>
"""

CONTENT_MANAGEMENT_CONTENT = """
<h2>What is Content Management?</h2>
<p>Content management is the process of creating, editing, organizing and publishing digital content. A good CMS makes this process seamless and efficient.</p>
<h3>Best Practices</h3>
<ul>
  <li>Keep your content organized with categories and tags</li>
  <li>Write compelling titles and meta descriptions</li>
  <li>Use high-quality images and media</li>
  <li>Maintain consistent publishing schedules</li>
  <li>Optimize for search engines</li>
</ul>
"""


def seed_admin():
    """创建管理员账号，已存在管理员时跳过。返回管理员用户"""
    admin = User.query.filter_by(role=ROLE_ADMIN).first()
    if admin is not None:
        current_app.logger.info("管理员账号已存在，跳过")
        return admin

    admin = User(
        username=current_app.config['ADMIN_USERNAME'],
        email=current_app.config['ADMIN_EMAIL'],
        first_name='Admin',
        last_name='User',
        role=ROLE_ADMIN,
    )
    admin.set_password(current_app.config['ADMIN_PASSWORD'])
    db.session.add(admin)
    db.session.commit()
    current_app.logger.info(f"管理员账号已创建: {admin.email}")
    return admin


def seed_categories(admin):
    """初始化分类数据，已有分类时跳过"""
    if Category.query.first() is not None:
        current_app.logger.info("分类已存在，跳过")
        return 0

    for category_data in SEED_CATEGORIES:
        db.session.add(Category(
            name=category_data["name"],
            slug=slugify(category_data["name"]),
            description=category_data["description"],
            color=category_data["color"],
            created_by=admin.id,
        ))
    db.session.commit()
    current_app.logger.info(f"分类数据初始化完成，共添加 {len(SEED_CATEGORIES)} 个分类")
    return len(SEED_CATEGORIES)


def seed_posts(admin):
    """在 Technology 分类下创建两篇已发布的示例文章，已有文章时跳过"""
    if Post.query.first() is not None:
        current_app.logger.info("文章已存在，跳过")
        return 0

    tech = Category.query.filter_by(name='Technology').first()
    if tech is None:
        current_app.logger.warning("未找到 Technology 分类，跳过示例文章")
        return 0

    now = datetime.utcnow()
    posts = [
        Post(
            title='Welcome to Your New CMS',
            slug=slugify('Welcome to Your New CMS'),
            content=WELCOME_CONTENT,
            excerpt='Learn how to get started with your new CMS and explore its powerful features.',
            status=STATUS_PUBLISHED,
            category_id=tech.id,
            author_id=admin.id,
            tags=['cms', 'getting-started', 'tutorial'],
            is_featured=True,
            seo_title='Welcome to Your New CMS',
            seo_description='Guide to getting started with your new CMS: features, setup and best practices.',
            published_at=now,
        ),
        Post(
            title='Understanding Content Management',
            slug=slugify('Understanding Content Management'),
            content=CONTENT_MANAGEMENT_CONTENT,
            excerpt=make_excerpt(CONTENT_MANAGEMENT_CONTENT),
            status=STATUS_PUBLISHED,
            category_id=tech.id,
            author_id=admin.id,
            tags=['content-management', 'best-practices'],
            published_at=now - timedelta(days=1),
        ),
    ]
    db.session.add_all(posts)
    db.session.commit()
    current_app.logger.info(f"示例文章初始化完成，共添加 {len(posts)} 篇文章")
    return len(posts)


def seed_database():
    admin = seed_admin()
    return {
        'categories': seed_categories(admin),
        'posts': seed_posts(admin),
    }


def register_commands(app):
    @app.cli.command('seed')
    @click.option('--create-tables', is_flag=True, help='先执行 db.create_all()')
    def seed_command(create_tables):
        """初始化管理员、分类和示例文章"""
        if create_tables:
            db.create_all()
        result = seed_database()
        click.echo(f"数据初始化完成: 新增 {result['categories']} 个分类, {result['posts']} 篇文章")
