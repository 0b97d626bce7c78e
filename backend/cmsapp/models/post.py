"""
定义文章模型 (Post)。
存储标题、slug、正文、摘要、封面图、分类、标签、状态、作者、发布时间、
浏览/点赞计数、推荐标记以及 SEO 元数据。

作者 (author_id) 在创建后不可修改；views/likes 只能通过 post_service 中的原子自增更新。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
import math
from datetime import datetime
from cmsapp import db

STATUS_DRAFT = 'draft'
STATUS_PUBLISHED = 'published'
STATUS_ARCHIVED = 'archived'
POST_STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED, STATUS_ARCHIVED)

WORDS_PER_MINUTE = 200


class Post(db.Model):
    __tablename__ = 'posts'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.String(500), nullable=True)
    featured_image = db.Column(db.String(255), nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True, index=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    published_at = db.Column(db.DateTime, nullable=True, index=True)
    views = db.Column(db.Integer, nullable=False, default=0, index=True)
    likes = db.Column(db.Integer, nullable=False, default=0)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    allow_comments = db.Column(db.Boolean, nullable=False, default=True)
    seo_title = db.Column(db.String(60), nullable=True)
    seo_description = db.Column(db.String(160), nullable=True)
    seo_keywords = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = db.relationship('User', backref=db.backref('posts', lazy='dynamic'), lazy='joined')
    category = db.relationship('Category', lazy='joined')

    @property
    def reading_time(self):
        word_count = len((self.content or '').split())
        return math.ceil(word_count / WORDS_PER_MINUTE)

    @property
    def is_published(self):
        return (self.status == STATUS_PUBLISHED
                and self.published_at is not None
                and self.published_at <= datetime.utcnow())

    def to_dict(self, include_content=True):
        """将 Post 对象转换为字典表示"""
        data = {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'excerpt': self.excerpt,
            'featured_image': self.featured_image,
            'category': self.category.to_summary() if self.category else None,
            'tags': self.tags or [],
            'status': self.status,
            'author': self.author.to_summary() if self.author else None,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'views': self.views,
            'likes': self.likes,
            'is_featured': self.is_featured,
            'allow_comments': self.allow_comments,
            'seo_title': self.seo_title,
            'seo_description': self.seo_description,
            'seo_keywords': self.seo_keywords or [],
            'reading_time': self.reading_time,
            'is_published': self.is_published,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_content:
            data['content'] = self.content
        return data

    def __repr__(self):
        return f'<Post {self.id} - {self.title} by User {self.author_id}>'
