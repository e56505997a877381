from messageboard.extensions.extensions import ma


class PostResponseSchema(ma.Schema):
    id = ma.Int()
    content = ma.Str()
    user_id = ma.Str()
    image_id = ma.Str(allow_none=True)
    created_at = ma.DateTime()
    author_email = ma.Str(allow_none=True)
    image_url = ma.Str(allow_none=True)
    can_delete = ma.Bool()
