from django.urls import path

from catalogue_app import views

urlpatterns = [
    path("imports/", views.upload_import, name="upload_import"),
    path("imports/search/", views.search_tmdb, name="import_search"),
    path("imports/<str:batch_id>/", views.import_batch, name="import_batch"),
    path("imports/<str:batch_id>/rows/<int:index>/override/", views.override_match, name="import_override"),
    path("imports/<str:batch_id>/rows/<int:index>/selection/", views.set_selection, name="import_selection"),
    path("imports/<str:batch_id>/commit/", views.commit_import, name="import_commit"),
]
