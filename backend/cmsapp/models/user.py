# backend/cmsapp/models/user.py
"""
定义用户模型 (User)。
存储用户名、邮箱、密码哈希、姓名、角色、启用状态、头像、简介和最近登录时间。
角色取值见 ROLES；用户停用时只将 is_active 置为 False，不做物理删除。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
from cmsapp import db
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash

ROLE_ADMIN = 'admin'
ROLE_EDITOR = 'editor'
ROLE_AUTHOR = 'author'
ROLE_READER = 'reader'
ROLES = (ROLE_ADMIN, ROLE_EDITOR, ROLE_AUTHOR, ROLE_READER)


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(30), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(50), nullable=True)
    last_name = db.Column(db.String(50), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_READER, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    avatar = db.Column(db.String(255), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        parts = [p for p in (self.first_name, self.last_name) if p]
        return ' '.join(parts) or self.username

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_dict(self):
        # 不返回 password_hash
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'role': self.role,
            'is_active': self.is_active,
            'avatar': self.avatar,
            'bio': self.bio,
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self):
        """嵌入到文章、媒体等对象中的精简信息"""
        return {
            'id': self.id,
            'username': self.username,
            'full_name': self.full_name,
            'avatar': self.avatar,
        }

    def __repr__(self):
        return f'<User {self.username} ({self.role})>'
