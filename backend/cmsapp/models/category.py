# backend/cmsapp/models/category.py
"""
定义分类模型 (Category)。
用于组织文章的分类体系，通过 parent_id 自关联支持层级结构。

children 和 post_count 不是存储字段，也不在模型上定义关系属性，
由 services.category_tree 中的查询函数按需计算。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
from cmsapp import db
from datetime import datetime


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True, index=True)
    slug = db.Column(db.String(120), nullable=False, unique=True, index=True)
    description = db.Column(db.String(500), nullable=True)
    color = db.Column(db.String(7), nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    creator = db.relationship('User', lazy='joined')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'color': self.color,
            'parent_id': self.parent_id,
            'is_active': self.is_active,
            'order': self.order,
            'created_by': self.creator.to_summary() if self.creator else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug, 'color': self.color}

    def __repr__(self):
        return f'<Category {self.name}>'
