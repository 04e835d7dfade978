from django.urls import path

from . import views


app_name = "prize"

urlpatterns = [
    path("claim/", views.claim_prize, name="claim_prize"),
    path("claim/fixed/", views.claim_fixed_prize, name="claim_fixed_prize"),
    path("stores/<uuid:store_id>/prizes/", views.store_prizes, name="store_prizes"),
]
