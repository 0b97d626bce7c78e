from cmsapp.models import User, Category, Post


def test_seed_command_is_idempotent(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['seed'])
    assert result.exit_code == 0, result.output
    assert '4' in result.output

    admin = User.query.filter_by(role='admin').one()
    assert admin.email == 'admin@cms.local'
    assert admin.check_password('admin123')
    assert sorted(c.slug for c in Category.query.all()) == ['business', 'health', 'lifestyle', 'technology']

    posts = Post.query.order_by(Post.published_at.desc()).all()
    assert [post.slug for post in posts] == ['welcome-to-your-new-cms', 'understanding-content-management']
    assert all(post.category.slug == 'technology' for post in posts)
    assert all(post.status == 'published' for post in posts)

    result = runner.invoke(args=['seed'])
    assert result.exit_code == 0, result.output
    assert User.query.count() == 1
    assert Category.query.count() == 4
    assert Post.query.count() == 2
