import uuid
from tortoise import fields, models


class Review(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    review = fields.TextField()
    rating = fields.FloatField(default=0)  # 0..5
    created_at = fields.DatetimeField(auto_now_add=True)
    tour = fields.ForeignKeyField("models.Tour", related_name="reviews", on_delete=fields.CASCADE)
    user = fields.ForeignKeyField("models.User", related_name="reviews", on_delete=fields.CASCADE)

    class Meta:
        table = "reviews"
        # One review per user per tour
        unique_together = (("tour", "user"),)
